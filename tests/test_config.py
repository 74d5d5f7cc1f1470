import contextlib
import io
import ipaddress
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from pydantic import ValidationError

from koth_agent import __version__
from koth_agent.cli import main, parse_args
from koth_agent.config import (
    AgentSettings,
    FileTLS,
    InlineTLS,
    NoTLS,
    parse_origins,
    resolve_tls,
    settings_from_args,
)
from koth_agent.domain.errors import ConfigurationError
from koth_agent.tls import materialize, validate_key_pair


class TestParseOrigins(unittest.TestCase):
    def test_default_ranges(self):
        self.assertEqual(
            parse_origins("0.0.0.0/0,::/0"),
            (ipaddress.ip_network("0.0.0.0/0"), ipaddress.ip_network("::/0")),
        )

    def test_host_bits_are_masked(self):
        self.assertEqual(parse_origins("10.1.2.3/8"), (ipaddress.ip_network("10.0.0.0/8"),))

    def test_whitespace_and_blank_entries(self):
        self.assertEqual(len(parse_origins(" 10.0.0.0/8 , ,192.168.0.0/16,")), 2)
        self.assertEqual(parse_origins(""), ())

    def test_invalid_range(self):
        with self.assertRaises(ConfigurationError):
            parse_origins("10.0.0.0/8,not-a-cidr")


class TestResolveTLS(unittest.TestCase):
    def test_no_material(self):
        self.assertIsInstance(resolve_tls(), NoTLS)

    def test_files_take_precedence(self):
        tls = resolve_tls(keyfile="k.pem", certfile="c.pem", keystring="KEY", certstring="CERT")
        self.assertEqual(tls, FileTLS(keyfile=Path("k.pem"), certfile=Path("c.pem")))

    def test_inline(self):
        tls = resolve_tls(keystring="KEY", certstring="CERT")
        self.assertIsInstance(tls, InlineTLS)
        self.assertEqual(tls.key_pem, "KEY")

    def test_half_pair_is_ignored(self):
        self.assertIsInstance(resolve_tls(keyfile="k.pem"), NoTLS)
        self.assertIsInstance(resolve_tls(certstring="CERT"), NoTLS)

    def test_inline_pem_not_in_repr(self):
        self.assertNotIn("SECRETKEY", repr(InlineTLS(key_pem="SECRETKEY", cert_pem="CERT")))


class TestSettings(unittest.TestCase):
    def test_frozen(self):
        settings = AgentSettings()
        with self.assertRaises(ValidationError):
            settings.token = "changed"

    def test_token_not_in_repr(self):
        self.assertNotIn("hunter2", repr(AgentSettings(token="hunter2")))

    def test_defaults_from_cli(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = settings_from_args(parse_args([]))
        self.assertEqual(settings.host, "0.0.0.0")
        self.assertEqual(settings.port, 31337)
        self.assertEqual(settings.owner_file, Path("owner.txt"))
        self.assertEqual(settings.health_cmd, "true")
        self.assertEqual(settings.owner_cmd, "")
        self.assertEqual(settings.token, "")
        self.assertFalse(settings.auth_enabled)
        self.assertEqual(len(settings.origins), 2)
        self.assertIsInstance(settings.tls, NoTLS)
        self.assertIsNone(settings.command_timeout)

    def test_flags(self):
        args = parse_args([
            "--host", "127.0.0.1",
            "--port", "8080",
            "--owner-cmd", "cat /root/owner",
            "--health-cmd", "pgrep nginx",
            "--origin", "10.0.0.0/8",
            "--apikey", "secret",
            "--cmd-timeout", "5",
        ])
        settings = settings_from_args(args)
        self.assertEqual(settings.port, 8080)
        self.assertEqual(settings.owner_cmd, "cat /root/owner")
        self.assertEqual(settings.health_cmd, "pgrep nginx")
        self.assertEqual(settings.origins, (ipaddress.ip_network("10.0.0.0/8"),))
        self.assertTrue(settings.auth_enabled)
        self.assertEqual(settings.command_timeout, 5.0)

    def test_environment_defaults(self):
        env = {"KOTH_APIKEY": "from-env", "KOTH_PORT": "9000", "KOTH_CMD_TIMEOUT": "2.5"}
        with patch.dict(os.environ, env, clear=True):
            settings = settings_from_args(parse_args([]))
        self.assertEqual(settings.token, "from-env")
        self.assertEqual(settings.port, 9000)
        self.assertEqual(settings.command_timeout, 2.5)

    def test_malformed_numeric_environment_is_a_usage_error(self):
        for env in ({"KOTH_PORT": "abc"}, {"KOTH_CMD_TIMEOUT": "soon"}):
            with self.subTest(env=env), patch.dict(os.environ, env, clear=True):
                with contextlib.redirect_stderr(io.StringIO()), self.assertRaises(SystemExit) as cm:
                    parse_args([])
                self.assertEqual(cm.exception.code, 2)

    def test_flag_replaces_malformed_environment(self):
        with patch.dict(os.environ, {"KOTH_PORT": "abc"}, clear=True):
            self.assertEqual(parse_args(["--port", "8080"]).port, 8080)

    def test_empty_timeout_environment_means_unbounded(self):
        with patch.dict(os.environ, {"KOTH_CMD_TIMEOUT": ""}, clear=True):
            self.assertIsNone(parse_args([]).cmd_timeout)

    def test_flag_overrides_environment(self):
        with patch.dict(os.environ, {"KOTH_APIKEY": "from-env"}, clear=True):
            settings = settings_from_args(parse_args(["--apikey", "from-flag"]))
        self.assertEqual(settings.token, "from-flag")

    def test_out_of_range_port(self):
        with self.assertRaises(ConfigurationError):
            settings_from_args(parse_args(["--port", "70000"]))


class TestCli(unittest.TestCase):
    def test_version_exits_zero(self):
        out = io.StringIO()
        with contextlib.redirect_stdout(out), self.assertRaises(SystemExit) as cm:
            parse_args(["--version"])
        self.assertEqual(cm.exception.code, 0)
        self.assertEqual(out.getvalue().strip(), __version__)

    def test_help_exits_zero(self):
        out = io.StringIO()
        with contextlib.redirect_stdout(out), self.assertRaises(SystemExit) as cm:
            parse_args(["--help"])
        self.assertEqual(cm.exception.code, 0)
        self.assertIn("--owner-cmd", out.getvalue())

    @patch("koth_agent.cli.serve")
    def test_bad_origin_exits_one_without_serving(self, mock_serve):
        with self.assertRaises(SystemExit) as cm:
            main(["--origin", "bogus"])
        self.assertEqual(cm.exception.code, 1)
        mock_serve.assert_not_called()

    @patch("koth_agent.cli.serve")
    def test_main_serves_resolved_settings(self, mock_serve):
        main(["--port", "4444", "--apikey", "secret"])
        settings = mock_serve.call_args.args[0]
        self.assertEqual(settings.port, 4444)
        self.assertEqual(settings.token, "secret")


class TestTLSMaterial(unittest.TestCase):
    def test_garbage_key_pair_is_rejected(self):
        with tempfile.TemporaryDirectory() as tmp:
            key = Path(tmp) / "key.pem"
            cert = Path(tmp) / "cert.pem"
            key.write_text("not a key")
            cert.write_text("not a cert")
            with self.assertRaises(ConfigurationError):
                validate_key_pair(key, cert)

    def test_missing_files_are_rejected(self):
        with self.assertRaises(ConfigurationError):
            with materialize(FileTLS(keyfile=Path("/nonexistent/k.pem"), certfile=Path("/nonexistent/c.pem"))):
                pass

    def test_inline_material_is_validated(self):
        with self.assertRaises(ConfigurationError):
            with materialize(InlineTLS(key_pem="bad", cert_pem="bad")):
                pass

    @patch("koth_agent.tls.validate_key_pair")
    def test_inline_material_lives_only_inside_context(self, _validate):
        with materialize(InlineTLS(key_pem="KEY", cert_pem="CERT")) as files:
            self.assertEqual(Path(files.keyfile).read_text(), "KEY")
            self.assertEqual(Path(files.certfile).read_text(), "CERT")
            self.assertEqual(os.stat(files.keyfile).st_mode & 0o777, 0o600)
        self.assertFalse(Path(files.keyfile).exists())

    def test_plain_http(self):
        with materialize(NoTLS()) as files:
            self.assertIsNone(files)


if __name__ == "__main__":
    unittest.main()
