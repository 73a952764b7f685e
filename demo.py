#!/usr/bin/env python3
"""
Options Snapshot - Demo

This script walks through the complete workflow against a running terminal:
1. List upcoming expirations
2. Pick one (the nearest, unless given)
3. Fetch and merge quote, OI, volume and IV snapshots
4. Print the chain

Usage:
    python demo.py SPY
    python demo.py SPY 20250919
"""
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from optsnap import OptionsDataError, OptionsService
from config import upstream_config, service_config

import logging

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def _fmt(value, pattern="{:.2f}"):
    return "-" if value is None else pattern.format(value)


def print_chain(chain) -> None:
    header = f"{'C OI':>8} {'C Vol':>7} {'C IV':>6} {'C Bid':>7} {'C Ask':>7} | " \
             f"{'Strike':^9} | {'P Bid':>7} {'P Ask':>7} {'P IV':>6} {'P Vol':>7} {'P OI':>8}"
    print(header)
    print("-" * len(header))
    for row in chain.rows:
        print(
            f"{_fmt(row.call_oi, '{:.0f}'):>8} {_fmt(row.call_vol, '{:.0f}'):>7} "
            f"{_fmt(row.call_iv, '{:.3f}'):>6} {_fmt(row.call_bid):>7} {_fmt(row.call_ask):>7} | "
            f"{float(row.strike):^9.2f} | "
            f"{_fmt(row.put_bid):>7} {_fmt(row.put_ask):>7} {_fmt(row.put_iv, '{:.3f}'):>6} "
            f"{_fmt(row.put_vol, '{:.0f}'):>7} {_fmt(row.put_oi, '{:.0f}'):>8}"
        )


def run(service: OptionsService, symbol: str, expiration=None) -> None:
    print("\n[1/3] Listing expirations...")
    expirations = service.get_expirations(symbol)
    if not expirations:
        print("  ❌ No upcoming expirations.")
        return

    for exp in expirations[:8]:
        print(f"  • {exp.yyyymmdd}  {exp.label}")
    if len(expirations) > 8:
        print(f"  ... {len(expirations) - 8} more")

    expiration = expiration or expirations[0].yyyymmdd

    print(f"\n[2/3] Fetching snapshots for {expiration}...")
    chain = service.get_options_chain(symbol, expiration)
    print(f"  ✅ {chain.row_count} strikes")
    if chain.underlying and chain.underlying.price is not None:
        print(f"  ✅ Underlying: ${chain.underlying.price:.2f}")
    if chain.missing_sources:
        print(f"  ⚠️  Missing sources: {', '.join(chain.missing_sources)}")

    print(f"\n[3/3] Chain:")
    print_chain(chain)


def main(argv):
    symbol = argv[1] if len(argv) > 1 else "SPY"
    expiration = argv[2] if len(argv) > 2 else None

    print(f"\n📊 SYMBOL: {symbol.upper()}")
    print(f"🔌 Upstream: {upstream_config.base_url}")
    print(f"🕒 Timezone: {service_config.timezone}")
    print("-" * 60)

    service = OptionsService()
    try:
        run(service, symbol, expiration)
    finally:
        service.close()

    print("\nTo open the viewer: python3 -m streamlit run ui/app.py")


if __name__ == "__main__":
    try:
        main(sys.argv)
    except KeyboardInterrupt:
        print("\n\nDemo interrupted by user")
    except OptionsDataError as e:
        logger.error(f"Demo failed: {e}")
        print(f"\n❌ Error: {e}")
        print("\nTroubleshooting:")
        print("  • Check the terminal is running and THETA_BASE_URL points at it")
        print("  • Use a listed expiration (YYYYMMDD or YYYY-MM-DD)")
        sys.exit(1)
