"""
Paymaster administration CLI.

Usage:
    paymaster-admin [--chain CHAIN] status
    paymaster-admin [--chain CHAIN] deposit --amount 0.5
    paymaster-admin [--chain CHAIN] set-gas-bound --value 0.05
"""
from __future__ import annotations

import asyncio
from decimal import Decimal, InvalidOperation

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from web3 import Web3

from ..api.main import init_monitoring
from ..clients import ClientFactory
from ..config import load_settings
from ..erc4337 import EntryPointContract, PaymasterContract
from ..exceptions import RelayError
from ..logging_config import setup_logging
from ..monitoring import capture_exception, init_sentry, scrub
from ..registry import ChainName, ChainRegistry
from .deposit import deposit_funds
from .gas_bound import GasBoundStatus, update_gas_bound
from .status import DepositStatus, MIN_RESERVE_WEI, check_status

console = Console()

_STATUS_STYLE = {
    DepositStatus.EMPTY: ("red", "Paymaster has no deposit"),
    DepositStatus.LOW: ("yellow", "Paymaster deposit is low, consider topping up"),
    DepositStatus.OK: ("green", "Paymaster deposit looks healthy"),
}


def parse_native_amount(value: str, *, allow_zero: bool = False) -> int:
    """Convert a decimal amount of the native token to wei."""
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise click.BadParameter(f"{value!r} is not a number")
    if not amount.is_finite() or amount < 0 or (amount == 0 and not allow_zero):
        raise click.BadParameter(f"{value!r} must be a positive amount")
    return Web3.to_wei(amount, "ether")


def format_amount(wei: int, symbol: str) -> str:
    return f"{Web3.from_wei(wei, 'ether')} {symbol}"


def _run(ctx: click.Context, coro) -> object:
    """Run a workflow. Any failure is printed, reported and exits non-zero."""
    tags = {"chain": ctx.obj["chain"].identifier}
    try:
        return asyncio.run(coro)
    except RelayError as e:
        console.print(f"[red]Error: {escape(e.message)}[/red]")
        if e.details:
            for key, value in e.details.items():
                console.print(f"  [dim]{key}: {escape(str(value))}[/dim]")
        capture_exception(e, tags=tags)
        ctx.exit(1)
    except Exception as e:
        console.print(f"[red]Unexpected error ({type(e).__name__}): {escape(scrub(str(e)))}[/red]")
        capture_exception(e, tags=tags)
        ctx.exit(1)


@click.group()
@click.option(
    "--chain",
    envvar="PAYMASTER_CHAIN",
    default=ChainName.RADIUS_TESTNET.value,
    show_default=True,
    type=click.Choice([c.value for c in ChainName]),
    help="Chain to operate on",
)
@click.option("--env-file", type=click.Path(dir_okay=False), help="Environment file to load")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx, chain: str, env_file: str | None, verbose: bool):
    """Paymaster administration: status, deposits and gas bound updates."""
    ctx.ensure_object(dict)
    setup_logging(json_format=False, level="DEBUG" if verbose else "WARNING")

    try:
        settings = load_settings(env_file)
        registry = ChainRegistry.from_settings(settings)
        descriptor = registry.resolve(chain)
    except RelayError as e:
        # Settings may be unusable here; fall back to SENTRY_DSN from the environment
        init_sentry()
        console.print(f"[red]Error: {escape(e.message)}[/red]")
        capture_exception(e, tags={"chain": chain}, level="fatal")
        ctx.exit(1)

    init_monitoring(settings)

    ctx.obj["settings"] = settings
    ctx.obj["chain"] = descriptor
    ctx.obj["factory"] = ClientFactory(settings, registry)


@cli.command()
@click.pass_context
def status(ctx):
    """Show the paymaster's EntryPoint deposit and configuration."""
    descriptor = ctx.obj["chain"]
    factory: ClientFactory = ctx.obj["factory"]

    async def _status():
        web3 = factory.build_public_client(descriptor.identifier)
        entry_point = EntryPointContract(web3, descriptor.entry_point, chain=descriptor.identifier)
        paymaster = PaymasterContract(web3, descriptor.paymaster_address, chain=descriptor.identifier)
        try:
            return await check_status(entry_point, paymaster)
        finally:
            await web3.provider.disconnect()

    console.print(f"\n[bold blue]Paymaster status on {descriptor.display_name}[/bold blue]\n")
    report = _run(ctx, _status())
    symbol = descriptor.native_token

    table = Table(show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Paymaster", report.paymaster)
    table.add_row("EntryPoint", report.entry_point)
    table.add_row("Deposit", format_amount(report.balance, symbol))
    table.add_row("Staked", str(report.deposit_info.staked))
    table.add_row("Stake", format_amount(report.deposit_info.stake, symbol))
    if report.details is not None:
        table.add_row("Version", report.details.version)
        table.add_row("Owner", report.details.owner)
        table.add_row("Verifying signer", report.details.verifying_signer)
        table.add_row("Max gas cost", format_amount(report.details.max_allowed_gas_cost, symbol))
    else:
        table.add_row("Contract info", "[yellow]unavailable[/yellow]")
    console.print(table)

    style, message = _STATUS_STYLE[report.status]
    console.print(f"\n[{style}]{message}[/{style}]")
    if report.status is not DepositStatus.OK:
        console.print(
            f"[dim]Recommended minimum: {format_amount(MIN_RESERVE_WEI, symbol)}. "
            f"Run `paymaster-admin --chain {descriptor.identifier} deposit`.[/dim]"
        )
    console.print()


@cli.command()
@click.option(
    "--amount",
    envvar="DEPOSIT_AMOUNT",
    default="0.5",
    show_default=True,
    help="Amount of native token to deposit",
)
@click.pass_context
def deposit(ctx, amount: str):
    """Deposit native token into the paymaster's EntryPoint balance."""
    descriptor = ctx.obj["chain"]
    settings = ctx.obj["settings"]
    factory: ClientFactory = ctx.obj["factory"]
    value = parse_native_amount(amount)

    async def _deposit():
        deployer = factory.build_deployer_client(descriptor.identifier)
        console.print(f"Deployer: [cyan]{deployer.address}[/cyan]")
        entry_point = EntryPointContract(deployer.web3, descriptor.entry_point, chain=descriptor.identifier)
        paymaster = PaymasterContract(
            deployer.web3, descriptor.paymaster_address, signer=deployer, chain=descriptor.identifier
        )
        try:
            return await deposit_funds(
                deployer, entry_point, paymaster, value,
                confirmation_timeout=settings.tx_confirmation_timeout_seconds,
            )
        finally:
            await deployer.close()

    symbol = descriptor.native_token
    console.print(
        f"\n[bold blue]Depositing {format_amount(value, symbol)} on {descriptor.display_name}[/bold blue]\n"
    )
    result = _run(ctx, _deposit())

    console.print(f"[green]✓ Deposit confirmed in block {result.outcome.block_number}[/green]")
    console.print(f"Transaction: [cyan]{descriptor.tx_url(result.outcome.tx_hash)}[/cyan]")
    console.print(f"Paymaster deposit: {format_amount(result.balance_before, symbol)} -> "
                  f"{format_amount(result.balance_after, symbol)}")
    console.print(f"Deployer balance: {format_amount(result.deployer_balance_after, symbol)}")
    if not result.settled:
        console.print(
            f"[yellow]Deposit grew by {format_amount(result.delta, symbol)}, "
            f"expected {format_amount(result.amount, symbol)}[/yellow]"
        )
    console.print()


@cli.command(name="set-gas-bound")
@click.option(
    "--value",
    envvar="NEW_GAS_LIMIT",
    default="0.05",
    show_default=True,
    help="New maxAllowedGasCost, in native token",
)
@click.pass_context
def set_gas_bound(ctx, value: str):
    """Update the paymaster's maximum sponsored gas cost per operation."""
    descriptor = ctx.obj["chain"]
    settings = ctx.obj["settings"]
    factory: ClientFactory = ctx.obj["factory"]
    requested = parse_native_amount(value, allow_zero=True)

    async def _update():
        deployer = factory.build_deployer_client(descriptor.identifier)
        paymaster = PaymasterContract(
            deployer.web3, descriptor.paymaster_address, signer=deployer, chain=descriptor.identifier
        )
        try:
            return await update_gas_bound(
                deployer, paymaster, requested,
                confirmation_timeout=settings.tx_confirmation_timeout_seconds,
            )
        finally:
            await deployer.close()

    symbol = descriptor.native_token
    result = _run(ctx, _update())

    if result.status is GasBoundStatus.UNCHANGED:
        console.print(f"[yellow]Gas limit is already {format_amount(result.current, symbol)}[/yellow]")
        return

    console.print(f"[green]✓ Gas limit updated in block {result.outcome.block_number}[/green]")
    console.print(f"Transaction: [cyan]{descriptor.tx_url(result.outcome.tx_hash)}[/cyan]")
    console.print(f"Max gas cost: {format_amount(result.previous, symbol)} -> "
                  f"{format_amount(result.current, symbol)}")


if __name__ == "__main__":
    cli()
