"""
bearchain CLI

Inspection helpers around the local chain harness.

Commands:
  accounts  - List the funded genesis accounts
  inspect   - Decode a forge broadcast artifact
  deploy    - Start anvil, deploy a contract and print its address
"""

from __future__ import annotations

import logging
import sys
import time
from pathlib import Path
from typing import Optional

import click

from .config import HarnessConfig
from .errors import BearchainError
from .foundry.account import GenesisConfig
from .foundry.anvil import Anvil
from .foundry.broadcast import Broadcast
from .utils import bytes_to_hex


# ============ Constants ============

VERSION = "0.1.0"


def _fail(exc: BearchainError) -> None:
    click.secho(f"ERROR: {exc}", fg="red", err=True)
    sys.exit(exc.exit_code)


# ============ Main CLI Group ============


@click.group()
@click.version_option(version=VERSION, prog_name="bearchain")
@click.option("--env-file", type=click.Path(path_type=Path), default=Path(".env"), help="Optional .env file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, env_file: Path, verbose: bool) -> None:
    """bearchain - local anvil harness."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        ctx.obj = HarnessConfig.from_env(env_file)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="environment") from exc


# ============ Commands ============


@cli.command()
def accounts() -> None:
    """List the funded genesis accounts."""
    genesis = GenesisConfig.anvil_default()
    try:
        funded = genesis.build_accounts()
    except BearchainError as exc:
        _fail(exc)
        return
    click.echo(f"Chain ID: {genesis.chain_id}")
    for index, account in enumerate(funded):
        click.echo(f"  ({index}) {account.address}")


@cli.command()
@click.argument("artifact", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--contract", "contract_name", default=None, help="Print only this contract's address")
def inspect(artifact: Path, contract_name: Optional[str]) -> None:
    """Decode a forge broadcast artifact (run-latest.json)."""
    try:
        broadcast = Broadcast.from_path(artifact)
        if contract_name is not None:
            click.echo(broadcast.find_contract_address(contract_name))
            return
    except BearchainError as exc:
        _fail(exc)
        return

    click.echo(f"Chain: {broadcast.chain}")
    click.echo(f"Commit: {broadcast.commit}")
    click.echo(f"Timestamp: {broadcast.timestamp}")
    click.echo("")

    contracts = broadcast.contract_addresses()
    click.echo(f"Contracts ({len(contracts)}):")
    for name, address in contracts.items():
        click.echo(f"  {name}: {address}")

    click.echo(f"Receipts ({len(broadcast.receipts)}):")
    for receipt in broadcast.receipts:
        status = click.style("ok", fg="green") if receipt.succeeded else click.style("failed", fg="red")
        click.echo(
            f"  {bytes_to_hex(receipt.transaction_hash)} block {receipt.block_number} "
            f"gas {receipt.gas_used} {status}"
        )


@cli.command()
@click.argument("contract_name")
@click.option("--account", "account_index", default=0, type=click.IntRange(0), help="Index of the deploying genesis account")
@click.option("--keep-running", is_flag=True, help="Keep anvil running until interrupted")
@click.option("--verbose-node", is_flag=True, help="Forward anvil output")
@click.pass_obj
def deploy(config: HarnessConfig, contract_name: str, account_index: int, keep_running: bool, verbose_node: bool) -> None:
    """Start anvil and deploy CONTRACT_NAME with forge."""
    try:
        anvil = Anvil(config)
        owner = anvil.account(account_index)
    except IndexError:
        raise click.BadParameter(f"no genesis account {account_index}", param_hint="--account")
    except BearchainError as exc:
        _fail(exc)
        return

    try:
        anvil.start(silent=not verbose_node)
        address = anvil.deploy_contract(contract_name, owner)
        click.secho(f"{contract_name} deployed at {address}", fg="green")
        click.echo(f"  RPC: {anvil.url}")
        click.echo(f"  Owner: {owner.address}")

        if keep_running:
            click.echo("Press Ctrl-C to stop anvil.")
            while True:
                time.sleep(1)
    except BearchainError as exc:
        _fail(exc)
    except KeyboardInterrupt:
        click.echo("")
    finally:
        anvil.stop()
