"""
Utility functions for the flash arbitrage engine.
"""
import sys
from typing import Dict, Union

from solders.pubkey import Pubkey


def get_terminal_colors() -> Dict[str, str]:
    """
    Get ANSI color codes for terminal output.

    Returns empty strings if stdout is not a TTY so that log files
    stay free of escape codes.

    Returns:
        Dictionary with color codes: GREEN, CYAN, YELLOW, RED, DIM, RESET
    """
    use_color = sys.stdout.isatty()
    return {
        'GREEN': '\033[92m' if use_color else '',   # Amounts and balances
        'CYAN': '\033[96m' if use_color else '',    # Addresses, venues, routes
        'YELLOW': '\033[93m' if use_color else '',  # Profit, fees, floors
        'RED': '\033[91m' if use_color else '',     # Failed attempts
        'DIM': '\033[90m' if use_color else '',     # Loan lifecycle noise
        'RESET': '\033[0m' if use_color else ''
    }


def short_address(address: Union[Pubkey, str], chars: int = 8) -> str:
    """Shorten an address for log output: first `chars` characters plus an ellipsis."""
    text = str(address)
    if len(text) <= chars:
        return text
    return f"{text[:chars]}..."
