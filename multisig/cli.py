"""
multisig.cli
------------

Command-line entry point for the multisig registry.

Commands
--------
run SCRIPT     Replay a JSON/YAML script of operations against a fresh wallet
               (dispatch goes to a RecordingDispatcher) and print the final state.
config         Print the effective configuration.
version        Print the package version.

Script format
-------------
    creator: alice
    fail_targets: ["0xbad"]          # optional, dispatch to these fails
    steps:
      - {op: propose_add_owner, caller: alice, identity: bob}
      - {op: confirm, caller: alice, index: last}
      - {op: execute, caller: alice, index: last}
      - {op: submit, caller: bob, target: "0xabc", amount: 5, payload: "0x01"}
      - {op: execute, caller: bob, index: 1, expect_error: QuorumNotMet}

`index: last` refers to the most recently submitted action. A step whose error
matches `expect_error` counts as passing; any other error (or a missing expected
error) stops the replay and exits with status 1.

Examples
--------
python -m multisig run scenario.yaml
python -m multisig run scenario.json --json
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

import typer
import yaml

from .config import load_config
from .dispatch import RecordingDispatcher
from .errors import ConfigError, MultisigError, error_from_code
from .logging import configure_from_config, get_logger, trace_scope
from .version import __version__
from .wallet import MultiSigWallet

log = get_logger(__name__)

app = typer.Typer(
    name="multisig",
    add_completion=False,
    no_args_is_help=True,
    help="M-of-N authorization registry: replay operation scripts and inspect config.",
)


class ScriptError(ValueError):
    """The script file itself is malformed (not a wallet rejection)."""


# -------------------- script loading --------------------


def _load_script(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ScriptError(f"script not found: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ScriptError(f"cannot parse {path}: {e}") from e
    if not isinstance(data, Mapping):
        raise ScriptError("script must be a mapping with 'creator' and 'steps'")
    if not isinstance(data.get("creator"), str):
        raise ScriptError("script needs a string 'creator'")
    steps = data.get("steps", [])
    if not isinstance(steps, list) or not all(isinstance(s, Mapping) for s in steps):
        raise ScriptError("'steps' must be a list of mappings")
    return dict(data)


def _payload(raw: Any) -> bytes:
    if raw is None:
        return b""
    if not isinstance(raw, str):
        raise ScriptError(f"payload must be a hex string (got {raw!r})")
    s = raw[2:] if raw.startswith("0x") else raw
    try:
        return bytes.fromhex(s)
    except ValueError as e:
        raise ScriptError(f"payload is not hex: {raw!r}") from e


def _require(step: Mapping[str, Any], key: str) -> Any:
    if key not in step:
        raise ScriptError(f"step {dict(step)!r} is missing {key!r}")
    return step[key]


# -------------------- replay --------------------


class _Replay:
    def __init__(self, wallet: MultiSigWallet) -> None:
        self.wallet = wallet
        self.last: Optional[int] = None
        self._ops: Dict[str, Callable[[str, Mapping[str, Any]], Any]] = {
            "submit": self._submit,
            "confirm": lambda c, s: wallet.confirm(c, self._index(s)),
            "revoke": lambda c, s: wallet.revoke(c, self._index(s)),
            "execute": self._execute,
            "propose_add_owner": lambda c, s: self._track(
                wallet.propose_add_owner(c, _require(s, "identity"))
            ),
            "propose_remove_owner": lambda c, s: self._track(
                wallet.propose_remove_owner(c, _require(s, "identity"))
            ),
            "propose_replace_owner": lambda c, s: self._track(
                wallet.propose_replace_owner(c, _require(s, "old"), _require(s, "new"))
            ),
            "propose_set_threshold": lambda c, s: self._track(
                wallet.propose_set_threshold(c, _require(s, "threshold"))
            ),
        }

    def _track(self, index: int) -> int:
        self.last = index
        return index

    def _index(self, step: Mapping[str, Any]) -> Any:
        idx = _require(step, "index")
        if idx == "last":
            if self.last is None:
                raise ScriptError("'index: last' used before any submit")
            return self.last
        return idx

    def _submit(self, caller: str, step: Mapping[str, Any]) -> int:
        return self._track(
            self.wallet.submit(
                caller,
                _require(step, "target"),
                step.get("amount", 0),
                _payload(step.get("payload")),
            )
        )

    def _execute(self, caller: str, step: Mapping[str, Any]) -> Dict[str, Any]:
        res = self.wallet.execute(caller, self._index(step))
        return {"success": res.success, "ret": "0x" + res.ret.hex()}

    def step(self, n: int, step: Mapping[str, Any]) -> Dict[str, Any]:
        op = _require(step, "op")
        fn = self._ops.get(op)
        if fn is None:
            raise ScriptError(f"step {n}: unknown op {op!r}")
        caller = _require(step, "caller")
        expected = step.get("expect_error")
        expected_cls = error_from_code(expected) if expected else None

        out: Dict[str, Any] = {"step": n, "op": op, "caller": caller}
        try:
            out["result"] = fn(caller, step)
        except MultisigError as e:
            out["error"] = e.to_dict()
            out["ok"] = expected_cls is not None and isinstance(e, expected_cls)
            return out
        out["ok"] = expected_cls is None
        if expected_cls is not None:
            out["error"] = {"code": "MissingError", "message": f"expected {expected}", "details": {}}
        return out


def replay(script: Mapping[str, Any]) -> Dict[str, Any]:
    """Run every step of `script`; stop at the first unexpected outcome."""
    fail_targets = script.get("fail_targets", [])
    if not isinstance(fail_targets, list) or not all(isinstance(t, str) for t in fail_targets):
        raise ScriptError("'fail_targets' must be a list of strings")
    dispatcher = RecordingDispatcher()
    dispatcher.fail(*fail_targets)
    try:
        wallet = MultiSigWallet(script["creator"], dispatcher=dispatcher, address=script.get("address"))
    except MultisigError as e:
        raise ScriptError(f"cannot create wallet: {e}") from e
    runner = _Replay(wallet)

    results: List[Dict[str, Any]] = []
    ok = True
    for n, step in enumerate(script.get("steps", [])):
        try:
            res = runner.step(n, step)
        except ValueError as e:
            # ScriptError, or an unknown expect_error code
            raise ScriptError(f"step {n}: {e}") from e
        results.append(res)
        if not res["ok"]:
            ok = False
            break
    return {
        "ok": ok,
        "steps": results,
        "dispatched": [
            {"target": c.target, "amount": c.amount, "payload": "0x" + c.payload.hex()}
            for c in dispatcher.calls
        ],
        "state": wallet.state(),
    }


# -------------------- commands --------------------


@app.callback()
def _main() -> None:
    try:
        cfg = load_config()
    except ConfigError as e:
        typer.secho(f"Invalid configuration: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(2)
    configure_from_config(cfg)


@app.command("run")
def cmd_run(
    script: Path = typer.Argument(..., help="Path to a .json/.yaml operation script."),
    json_out: bool = typer.Option(False, "--json", help="Output result as JSON."),
) -> None:
    """
    Replay an operation script against a fresh wallet.
    """
    with trace_scope():
        try:
            report = replay(_load_script(script))
        except ScriptError as e:
            typer.secho(f"Invalid script: {e}", fg=typer.colors.RED, err=True)
            raise typer.Exit(2)
        log.info("script replayed", extra={"ok": report["ok"], "steps": len(report["steps"])})

    if json_out:
        typer.echo(json.dumps(report, indent=2, sort_keys=True))
    else:
        for r in report["steps"]:
            mark = "ok  " if r["ok"] else "FAIL"
            detail = r["error"]["code"] if "error" in r else r.get("result")
            typer.echo(f"[{mark}] #{r['step']} {r['op']} by {r['caller']}: {detail}")
        st = report["state"]
        typer.secho("Wallet:", bold=True)
        typer.echo(f"- address: {st['address']}")
        typer.echo(f"- owners: {', '.join(st['owners'])}")
        typer.echo(f"- threshold: {st['threshold']}")
        typer.echo(f"- actions: {len(st['actions'])} (pending: {st['pending']})")

    if not report["ok"]:
        raise typer.Exit(1)


@app.command("config")
def cmd_config() -> None:
    """Print the effective configuration as JSON."""
    typer.echo(json.dumps(load_config().as_dict(), indent=2, sort_keys=True))


@app.command("version")
def cmd_version() -> None:
    typer.echo(__version__)


def get_app() -> typer.Typer:
    return app


if __name__ == "__main__":
    app()
