#!/usr/bin/env python3
"""
Development tasks for classql.

Usage: python dev_tasks.py <command> [args]

The schema commands work on the schema declared in ``tests/schema.py``.
"""

import json
import os
import shutil
import subprocess
import sys


def run_command(command, check=True):
    print(f"Running: {command}")
    result = subprocess.run(command, shell=True, check=check)
    return result.returncode == 0


def clean():
    print("Cleaning build artifacts...")
    for path in ["build", "dist", ".pytest_cache", ".mypy_cache", "htmlcov"]:
        shutil.rmtree(path, ignore_errors=True)
    for root, dirs, _files in os.walk("."):
        if "__pycache__" in dirs:
            shutil.rmtree(os.path.join(root, "__pycache__"), ignore_errors=True)


def lint():
    ok = run_command("mypy classql", check=False)
    ok = run_command("flake8 classql tests examples", check=False) and ok
    if not ok:
        sys.exit(1)


def test(*pytest_args):
    run_command(" ".join(["pytest tests/ --cov=classql --cov-report=term", *pytest_args]))


def _test_schema():
    from tests.schema import schema

    return schema


def print_schema(path=None):
    """Print the SDL, or write it to ``path``."""
    sdl = _test_schema().as_str()
    if path is None:
        print(sdl)
        return
    with open(path, "w", encoding="utf-8") as f:
        f.write(sdl + "\n")
    print(f"Wrote {path}")


def introspect(path="schema.json"):
    """Write the introspection result, the input most client code generators expect."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump({"data": _test_schema().introspect()}, f, indent=2, default=str)
    print(f"Wrote {path}")


def list_types():
    """One line per declared type: kind, name and field count."""
    for name, gql_type in sorted(_test_schema().graphql_schema.type_map.items()):
        if name.startswith("__"):
            continue
        fields = getattr(gql_type, "fields", None)
        count = f" ({len(fields)} fields)" if fields is not None else ""
        print(f"{type(gql_type).__name__[7:-4]:<12} {name}{count}")


def run_example():
    run_command(f"{sys.executable} -m examples.basic_example")


def serve():
    run_command(f"{sys.executable} -m examples.playground_app")


COMMANDS = {
    "clean": clean,
    "lint": lint,
    "test": test,
    "schema": print_schema,
    "introspect": introspect,
    "types": list_types,
    "example": run_example,
    "serve": serve,
}


def main():
    if len(sys.argv) < 2 or sys.argv[1] not in COMMANDS:
        print("Usage: python dev_tasks.py <command> [args]")
        print("Commands: " + ", ".join(COMMANDS))
        sys.exit(1)
    COMMANDS[sys.argv[1]](*sys.argv[2:])


if __name__ == "__main__":
    main()
