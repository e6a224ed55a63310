"""
tftpayouts/cli.py

Command line entry point.

Run with: tftpayouts --sequence-number <N> [options]
      or: python -m tftpayouts --sequence-number <N> [options]

Every option can also be given through the environment variable named in
its help text.
"""

import logging
from typing import Optional

import click

from .config import (
    DEFAULT_NETWORK,
    DEFAULT_OUTPUT_FILE,
    DEFAULT_PAYOUTS_FILE,
    HORIZON_URLS,
    RETRY_BACKOFF_SECONDS,
    PayoutConfig,
)
from .errors import FatalInputError, PayoutError
from .horizon.client import HorizonClient
from .payouts.eligibility import create_checker
from .payouts.history import HistoryIndex
from .payouts.pipeline import BatchReport, PayoutPipeline, RecordStatus
from .payouts.records import read_payouts
from .payouts.tx_builder import PayoutTransactionBuilder

logger = logging.getLogger("tftpayouts.cli")


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s [PAYOUTS] %(levelname)s: %(message)s'
    )


def run_payouts(
    config: PayoutConfig,
    client: Optional[HorizonClient] = None,
) -> BatchReport:
    """
    Run one payout batch from config.payouts_file to config.output_file.

    Args:
        config: Run configuration
        client: Horizon client (created from the config if None)

    Returns:
        BatchReport for the batch

    Raises:
        PayoutError: On any fatal input or remote error
    """
    config.validate()

    try:
        with open(config.payouts_file, "r", encoding="utf-8") as f:
            records = read_payouts(f)
    except OSError as e:
        raise FatalInputError(f"Failed to open payouts input file {e}") from e

    owns_client = client is None
    if owns_client:
        client = HorizonClient(config.resolved_horizon_url)
        logger.info(f"Using Horizon at {config.resolved_horizon_url}")

    try:
        retry_policy = config.retry_policy()
        history = HistoryIndex(
            client, config.asset_issuer, retry_policy=retry_policy
        ).build()
        logger.info("Got a list of all memos")

        checker = create_checker(
            config.check_trust,
            client,
            asset_code=config.asset_code,
            asset_issuer=config.asset_issuer,
            retry_policy=retry_policy,
        )
        builder = PayoutTransactionBuilder(
            source_account=config.asset_issuer,
            asset_code=config.asset_code,
            asset_issuer=config.asset_issuer,
            network_passphrase=config.network_passphrase,
        )
        pipeline = PayoutPipeline(history, checker, builder)

        try:
            out = open(config.output_file, "w", encoding="utf-8")
        except OSError as e:
            raise FatalInputError(f"Failed to open payouts output file {e}") from e

        with out:
            def write_envelope(xdr: str) -> None:
                out.write(xdr)
                out.write("\n")
                out.flush()

            return pipeline.run(records, config.sequence_number, sink=write_envelope)
    finally:
        if owns_client:
            client.close()


def format_report(report: BatchReport) -> str:
    counts = report.counts
    lines = [
        f"Emitted:            {counts[RecordStatus.EMITTED]}",
        f"Already paid:       {counts[RecordStatus.DUPLICATE_SKIPPED]}",
        f"No trustline:       {counts[RecordStatus.INELIGIBLE_SKIPPED]}",
        f"Invalid payment:    {counts[RecordStatus.VALIDATION_SKIPPED]}",
        f"Next sequence:      {report.next_sequence}",
    ]
    return "\n".join(lines)


@click.command()
@click.option(
    '--sequence-number', type=int, default=0, envvar='TFTPAYOUTS_SEQUENCE_NUMBER',
    help='Sequence number of the first transaction (required). Env: TFTPAYOUTS_SEQUENCE_NUMBER',
)
@click.option(
    '--payouts-file', default=DEFAULT_PAYOUTS_FILE, show_default=True,
    envvar='TFTPAYOUTS_PAYOUTS_FILE',
    help='The input csv file. Env: TFTPAYOUTS_PAYOUTS_FILE',
)
@click.option(
    '--output-file', default=DEFAULT_OUTPUT_FILE, show_default=True,
    envvar='TFTPAYOUTS_OUTPUT_FILE',
    help='The output file to send around for signing. Env: TFTPAYOUTS_OUTPUT_FILE',
)
@click.option(
    '--check-trust/--no-check-trust', default=True, show_default=True,
    envvar='TFTPAYOUTS_CHECK_TRUST',
    help='Whether trustlines should be checked for destinations. Env: TFTPAYOUTS_CHECK_TRUST',
)
@click.option(
    '--network', type=click.Choice(sorted(HORIZON_URLS), case_sensitive=False),
    default=DEFAULT_NETWORK, show_default=True, envvar='TFTPAYOUTS_NETWORK',
    help='Stellar network. Env: TFTPAYOUTS_NETWORK',
)
@click.option(
    '--horizon-url', default=None, envvar='TFTPAYOUTS_HORIZON_URL',
    help='Horizon server, overrides the network default. Env: TFTPAYOUTS_HORIZON_URL',
)
@click.option(
    '--max-retries', type=click.IntRange(min=0), default=None,
    envvar='TFTPAYOUTS_MAX_RETRIES',
    help='Give up after this many retries of a Horizon server error (default: retry forever). '
         'Env: TFTPAYOUTS_MAX_RETRIES',
)
@click.option(
    '--retry-backoff', type=click.FloatRange(min=0), default=RETRY_BACKOFF_SECONDS,
    show_default=True, envvar='TFTPAYOUTS_RETRY_BACKOFF',
    help='Seconds to wait before retrying a Horizon server error. Env: TFTPAYOUTS_RETRY_BACKOFF',
)
@click.option('-v', '--verbose', is_flag=True, help='Debug logging.')
def main(
    sequence_number,
    payouts_file,
    output_file,
    check_trust,
    network,
    horizon_url,
    max_retries,
    retry_backoff,
    verbose,
):
    """Build unsigned TFT payout transactions from a payouts csv file."""
    setup_logging(verbose)

    config = PayoutConfig(
        sequence_number=sequence_number,
        payouts_file=payouts_file,
        output_file=output_file,
        check_trust=check_trust,
        network=network.lower(),
        horizon_url=horizon_url,
        max_retries=max_retries,
        retry_backoff=retry_backoff,
    )
    logger.debug(f"Configuration: {config.to_dict()}")

    try:
        report = run_payouts(config)
    except (PayoutError, ValueError) as e:
        logger.error(f"Payout run aborted: {e}")
        raise click.ClickException(str(e)) from e

    click.echo(format_report(report))


if __name__ == "__main__":
    main()
