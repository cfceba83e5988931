"""
ensbid CLI - Command Line Interface for the ENS blind auction

Main entry point for all CLI commands. Every transaction command prints
"Transaction ID is 0x..." on success and exits 0; any failure prints a single
line and exits 1. In quiet mode nothing is printed and only the exit code
tells the outcome.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path

import click
from pydantic import ValidationError
from web3 import Web3

from ensbid import __version__
from ensbid.core.config import (
    AUTO_NONCE,
    DEFAULT_BID,
    DEFAULT_DUMMIES,
    DEFAULT_GAS_PRICE,
    DEFAULT_SUBMISSION_TIMEOUT,
    OperationConfig,
    load_config,
)
from ensbid.core.errors import ENSError
from ensbid.crypto import bytes_to_hex, is_null_address
from ensbid.utils.logger import setup_logging


def build_orchestrator(ctx):
    """Wire the orchestrator to the JSON-RPC ledger and the local keystore."""
    from ensbid.chain import RegistryNameResolver, Web3Ledger
    from ensbid.core.auction import AuctionOrchestrator
    from ensbid.wallet import LocalKeystore

    network = load_config(ctx.obj["env_file"], rpc_url=ctx.obj["rpc"])
    ledger = Web3Ledger(network)
    return AuctionOrchestrator(
        ledger=ledger,
        wallets=LocalKeystore(ctx.obj["data_dir"] / "wallets"),
        resolver=RegistryNameResolver(ledger, network.registry),
        network=network,
    )


def _fail(ctx, message: str):
    if not ctx.obj["quiet"]:
        click.echo(message, err=True)
    ctx.exit(1)


def _operation_config(ctx, passphrase, gasprice, nonce, timeout) -> OperationConfig:
    try:
        return OperationConfig(
            passphrase=passphrase or "",
            gas_price=gasprice,
            nonce=nonce,
            timeout=timeout,
            quiet=ctx.obj["quiet"],
        )
    except ValidationError as e:
        _fail(ctx, f"Invalid option: {e.errors()[0]['msg']}")


def _transact(ctx, action):
    """Run a transaction-submitting action and report it."""
    try:
        with build_orchestrator(ctx) as orchestrator:
            tx_hash = action(orchestrator)
    except ValidationError as e:
        _fail(ctx, f"Invalid configuration: {e.errors()[0]['msg']}")
    except ENSError as e:
        _fail(ctx, str(e))
    else:
        if not ctx.obj["quiet"]:
            click.echo(f"Transaction ID is {tx_hash}")


def transaction_options(passphrase_help):
    """Flags shared by every command that sends a transaction."""
    def decorator(f):
        f = click.option("--timeout", default=DEFAULT_SUBMISSION_TIMEOUT, type=float,
                         help="Seconds to wait for the node to accept the transaction")(f)
        f = click.option("--nonce", "-n", default=AUTO_NONCE, type=int,
                         help="Nonce for the transaction (-1 lets the network decide)")(f)
        f = click.option("--gasprice", "-g", default=DEFAULT_GAS_PRICE,
                         help="Gas price for the transaction")(f)
        f = click.option("--passphrase", "-p", default="", envvar="ENSBID_PASSPHRASE",
                         help=passphrase_help)(f)
        return f
    return decorator


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--quiet", "-q", is_flag=True, help="No output; report success through the exit code")
@click.option("--data-dir", default="~/.ensbid", help="Data directory")
@click.option("--rpc", default=None, help="JSON-RPC endpoint (overrides ENSBID_RPC_URL)")
@click.option("--env-file", default=None, help="Read settings from this .env file")
@click.option("--log-file", is_flag=True, help="Also append log records to <data-dir>/logs/ensbid.log")
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx, debug, quiet, data_dir, rpc, env_file, log_file):
    """Interact with the Ethereum Name Service blind auction"""
    if debug:
        level = logging.DEBUG
    elif quiet:
        level = logging.CRITICAL
    else:
        level = logging.INFO
    data_dir = Path(data_dir).expanduser()
    setup_logging(level=level, log_dir=data_dir / "logs" if log_file else None)

    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = data_dir
    ctx.obj["quiet"] = quiet
    ctx.obj["rpc"] = rpc
    ctx.obj["env_file"] = env_file


# =============================================================================
# Address Commands
# =============================================================================

@cli.group()
def address():
    """Manage the address a name resolves to"""
    pass


@address.command("set")
@click.argument("name")
@click.option("--address", "-a", "target", default="", help="Address to set for the name")
@transaction_options("Passphrase for the account that owns the name")
@click.pass_context
def address_set(ctx, name, target, passphrase, gasprice, nonce, timeout):
    """Set the address of an ENS name

    \b
        ens address set --address=0x90f8bf6a479f320ead074411a4b0e7944ea8c9c1 --passphrase="my secret passphrase" enstest.eth

    The keystore for the account that owns the name must be local (i.e. listed
    with 'wallet list') and unlockable with the supplied passphrase.
    """
    config = _operation_config(ctx, passphrase, gasprice, nonce, timeout)
    _transact(ctx, lambda o: o.set_address(name, target, config=config))


# =============================================================================
# Auction Commands
# =============================================================================

@cli.group()
def auction():
    """Take part in the blind auction for a name"""
    pass


@auction.command("start")
@click.argument("name")
@click.option("--address", "-a", default="", help="Address doing the bidding")
@click.option("--bid", "-b", default=DEFAULT_BID,
              help="Bid price for the name. A 0-ether bid starts the auction without bidding")
@click.option("--mask", "-m", default="", help="Amount of Ether sent in the transaction (must be at least the bid)")
@click.option("--salt", "-s", default="", help="Memorable phrase needed when revealing bid")
@click.option("--dummies", "-d", default=DEFAULT_DUMMIES, type=int,
              help="Number of dummy entries to hide the true name being bid")
@transaction_options("Passphrase for the account that owns the bidding address")
@click.pass_context
def auction_start(ctx, name, address, bid, mask, salt, dummies, passphrase, gasprice, nonce, timeout):
    """Start the auction for an ENS name

    \b
        ens auction start --address=0x5FfC014343cd971B7eb70732021E26C35B744cc4 --passphrase="my secret passphrase" --bid="0.01 Ether" enstest.eth

    The keystore for the address must be local (i.e. listed with 'wallet list')
    and unlockable with the supplied passphrase.
    """
    config = _operation_config(ctx, passphrase, gasprice, nonce, timeout)
    _transact(ctx, lambda o: o.start_auction(
        name, address, bid=bid, mask=mask, salt=salt, decoys=dummies, config=config,
    ))


@auction.command("bid")
@click.argument("name")
@click.option("--address", "-a", default="", help="Address doing the bidding")
@click.option("--bid", "-b", default=DEFAULT_BID, help="Bid price for the name")
@click.option("--mask", "-m", default="", help="Amount of Ether sent in the transaction (must be at least the bid)")
@click.option("--salt", "-s", default="", help="Memorable phrase needed when revealing bid")
@transaction_options("Passphrase for the account that owns the bidding address")
@click.pass_context
def auction_bid(ctx, name, address, bid, mask, salt, passphrase, gasprice, nonce, timeout):
    """Place a sealed bid on an ENS name being auctioned"""
    config = _operation_config(ctx, passphrase, gasprice, nonce, timeout)
    _transact(ctx, lambda o: o.place_bid(name, address, bid, mask=mask, salt=salt, config=config))


@auction.command("reveal")
@click.argument("name")
@click.option("--address", "-a", default="", help="Address that placed the bid")
@click.option("--bid", "-b", default=DEFAULT_BID, help="Bid price used when bidding")
@click.option("--salt", "-s", default="", help="Phrase used when bidding")
@click.option("--commitment", "-c", default="", help="Sealed bid recorded when bidding, checked before revealing")
@transaction_options("Passphrase for the account that placed the bid")
@click.pass_context
def auction_reveal(ctx, name, address, bid, salt, commitment, passphrase, gasprice, nonce, timeout):
    """Reveal a sealed bid on an ENS name"""
    config = _operation_config(ctx, passphrase, gasprice, nonce, timeout)
    _transact(ctx, lambda o: o.reveal_bid(
        name, address, bid, salt, commitment=commitment or None, config=config,
    ))


@auction.command("finalize")
@click.argument("name")
@click.option("--address", "-a", default="", help="Address of the winning bidder")
@transaction_options("Passphrase for the winning account")
@click.pass_context
def auction_finalize(ctx, name, address, passphrase, gasprice, nonce, timeout):
    """Finalize a won auction for an ENS name"""
    config = _operation_config(ctx, passphrase, gasprice, nonce, timeout)
    _transact(ctx, lambda o: o.finalize_auction(name, address, config=config))


# =============================================================================
# Name Commands
# =============================================================================

@cli.group()
def name():
    """Inspect names"""
    pass


@name.command("info")
@click.argument("name")
@click.pass_context
def name_info(ctx, name):
    """Show the auction state, owner and resolver of an ENS name"""
    from ensbid.core.units import format_amount

    try:
        with build_orchestrator(ctx) as orchestrator:
            info = orchestrator.describe(name)
    except ValidationError as e:
        _fail(ctx, f"Invalid configuration: {e.errors()[0]['msg']}")
    except ENSError as e:
        _fail(ctx, str(e))
    else:
        if ctx.obj["quiet"]:
            return
        click.echo(f"Name: {info.name}")
        click.echo(f"State: {info.state.label}")
        if not is_null_address(info.owner):
            click.echo(f"Owner: {Web3.to_checksum_address(bytes_to_hex(info.owner))}")
        if not is_null_address(info.resolver):
            click.echo(f"Resolver: {Web3.to_checksum_address(bytes_to_hex(info.resolver))}")
        if info.entry.has_deed:
            ends = datetime.fromtimestamp(info.entry.registration_date, tz=timezone.utc)
            click.echo(f"Deed: {bytes_to_hex(info.entry.deed)}")
            click.echo(f"Registration date: {ends:%Y-%m-%d %H:%M:%S} UTC")
            click.echo(f"Value: {format_amount(info.entry.value)}")
            click.echo(f"Highest bid: {format_amount(info.entry.highest_bid)}")


# =============================================================================
# Wallet Commands
# =============================================================================

@cli.group()
def wallet():
    """Wallet management commands"""
    pass


@wallet.command("create")
@click.option("--name", "wallet_name", default="default", help="Wallet name")
@click.option("--passphrase", prompt=True, hide_input=True, confirmation_prompt=True, help="Encryption passphrase")
@click.pass_context
def wallet_create(ctx, wallet_name, passphrase):
    """Create a new encrypted wallet"""
    from ensbid.wallet import LocalKeystore

    keystore = LocalKeystore(ctx.obj["data_dir"] / "wallets")
    try:
        path, account = keystore.create(wallet_name, passphrase)
    except ENSError as e:
        _fail(ctx, str(e))
    else:
        if not ctx.obj["quiet"]:
            click.echo(f"Wallet created: {wallet_name}")
            click.echo(f"  Address: {Web3.to_checksum_address(bytes_to_hex(account))}")
            click.echo(f"  Saved to: {path}")


@wallet.command("list")
@click.pass_context
def wallet_list(ctx):
    """List all wallets"""
    from ensbid.wallet import LocalKeystore

    wallets = LocalKeystore(ctx.obj["data_dir"] / "wallets").list_wallets()
    if ctx.obj["quiet"]:
        return
    if not wallets:
        click.echo("No wallets found.")
        return
    for wallet_name, account in wallets:
        click.echo(f"  {wallet_name}: {account}")


if __name__ == "__main__":
    cli()
