"""
Tests for utils.py
"""
from unittest.mock import patch

from solders.pubkey import Pubkey

from flash_arb.utils import get_terminal_colors, short_address


class TestGetTerminalColors:
    """Tests for get_terminal_colors function."""

    def test_get_terminal_colors_with_tty(self):
        with patch('sys.stdout.isatty', return_value=True):
            colors = get_terminal_colors()
            assert colors['GREEN'] == '\033[92m'
            assert colors['RED'] == '\033[91m'
            assert colors['RESET'] == '\033[0m'

    def test_get_terminal_colors_without_tty(self):
        with patch('sys.stdout.isatty', return_value=False):
            colors = get_terminal_colors()
            assert set(colors.values()) == {''}

    def test_get_terminal_colors_all_keys_present(self):
        colors = get_terminal_colors()
        assert all(key in colors for key in ['GREEN', 'CYAN', 'YELLOW', 'RED', 'DIM', 'RESET'])


class TestShortAddress:
    """Tests for short_address function."""

    def test_pubkey(self):
        pubkey = Pubkey.from_string("So11111111111111111111111111111111111111112")
        assert short_address(pubkey) == "So111111..."

    def test_short_string_untouched(self):
        assert short_address("abc") == "abc"

    def test_custom_length(self):
        assert short_address("EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v", chars=4) == "EPjF..."
