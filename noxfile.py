"""
Nox sessions for the multisig registry.

Sessions:
  - lint : ruff + black + mypy over the package
  - unit : unit + property tests
  - cli  : smoke-run the console entry point

Pass extra args to pytest like:
  nox -s unit -- -k governance -vv
"""

from __future__ import annotations

from pathlib import Path

import nox

nox.options.reuse_venv = True
nox.options.stop_on_first_error = False

REPO_ROOT = Path(__file__).resolve().parent
PY_PATHS = ["multisig", "noxfile.py"]

TEST_PYTHONS = ["3.10", "3.11", "3.12"]


def _install_test_stack(session: nox.Session) -> None:
    session.run("python", "-m", "pip", "install", "--upgrade", "pip", silent=True)
    session.install("-e", f"{REPO_ROOT}[test]")


@nox.session(name="lint", python="3.11")
def lint(session: nox.Session) -> None:
    """Static analysis: ruff, black (check), mypy."""
    session.run("python", "-m", "pip", "install", "--upgrade", "pip", silent=True)
    session.install("-e", f"{REPO_ROOT}[dev]", "types-PyYAML")

    session.run("ruff", "check", *PY_PATHS)
    session.run("black", "--check", *PY_PATHS)
    session.run(
        "mypy",
        "--pretty",
        "--show-error-codes",
        "--ignore-missing-imports",
        "multisig",
    )


@nox.session(name="unit", python=TEST_PYTHONS)
def unit(session: nox.Session) -> None:
    """Unit and property tests."""
    _install_test_stack(session)
    session.env.setdefault("PYTHONUNBUFFERED", "1")
    session.run("pytest", "-q", *session.posargs)


@nox.session(name="cli", python="3.11")
def cli(session: nox.Session) -> None:
    """Check that the console script starts."""
    _install_test_stack(session)
    session.run("multisig", "version")
    session.run("multisig", "config")
