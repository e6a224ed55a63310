"""
tftpayouts/examples/dry_run_batch.py

Example: inspect what a payout batch would produce before writing it out.

This shows how to use the pipeline as a library to:
1. Load and check a payouts csv
2. Build the history of already paid references from Horizon
3. Check trustlines of destinations
4. Print the outcome of every record without writing an output file

Usage:
    python examples/dry_run_batch.py payout_info.csv 123456789 [--testnet]
"""

import logging
import sys

from tftpayouts import HorizonClient, PayoutConfig
from tftpayouts.payouts import (
    HistoryIndex,
    PayoutPipeline,
    PayoutTransactionBuilder,
    create_checker,
    read_payouts,
)

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [DRY-RUN] %(levelname)s: %(message)s'
)
logger = logging.getLogger(__name__)


def main(payouts_file: str, sequence: int, network: str = "public") -> int:
    config = PayoutConfig(sequence_number=sequence, payouts_file=payouts_file, network=network)
    config.validate()

    with open(config.payouts_file) as f:
        records = read_payouts(f)

    with HorizonClient(config.resolved_horizon_url) as client:
        history = HistoryIndex(client, config.asset_issuer).build()
        checker = create_checker(True, client)
        builder = PayoutTransactionBuilder(
            source_account=config.asset_issuer,
            asset_code=config.asset_code,
            asset_issuer=config.asset_issuer,
            network_passphrase=config.network_passphrase,
        )
        pipeline = PayoutPipeline(history, checker, builder)

        report = pipeline.run(records, config.sequence_number)

    for outcome in report.outcomes:
        print(f"{outcome.status.value:<20} {outcome.record.destination} {outcome.record.amount} {outcome.reason}")
    print(report.to_dict())
    return 0


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print(__doc__)
        sys.exit(2)
    net = "testnet" if "--testnet" in sys.argv[3:] else "public"
    sys.exit(main(sys.argv[1], int(sys.argv[2]), net))
