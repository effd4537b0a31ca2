#!/usr/bin/env python3
"""
Simple launcher script for the flash arbitrage demo.
"""
import argparse
import sys
from flash_arb.main import main

if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Flash Loan Arbitrage Engine')
    parser.add_argument(
        'mode',
        nargs='?',
        default='simulate',
        choices=['simulate', 'quote'],
        help='Operation mode: simulate (default) runs one attempt, quote only runs the pre-flight check'
    )
    parser.add_argument('--amount', type=int, default=None, help='Borrowed amount in smallest USDC units')
    parser.add_argument(
        '--direction',
        default='first',
        choices=['first', 'second'],
        help='Which venue takes the first hop'
    )

    args = parser.parse_args()

    try:
        sys.exit(main(mode=args.mode, amount=args.amount, direction=args.direction))
    except KeyboardInterrupt:
        print("\nStopped by user, attempt reverted")
        sys.exit(130)
