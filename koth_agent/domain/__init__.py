"""Pure domain logic: authorization checks, command execution, errors.

These modules are free of FastAPI/HTTP concerns so they can be unit-tested
on their own and swapped out (e.g. a sandboxed runner) without touching routes.
"""
__all__ = ["auth", "commands", "errors"]
