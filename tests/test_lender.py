"""
Tests for lender.py - flash loan protocol.
"""
import pytest

from flash_arb.errors import CallbackRejected, InsufficientAllowance, InsufficientBalance, LoanTooLarge
from flash_arb.lender import CALLBACK_SUCCESS, FlashLender


class RecordingBorrower:
    """Borrower that records its callback and optionally approves repayment."""

    def __init__(self, chain, approve_repayment=True, reply=CALLBACK_SUCCESS):
        self.chain = chain
        self.address = chain.new_address()
        self.approve_repayment = approve_repayment
        self.reply = reply
        self.calls = []

    def on_flash_loan(self, sender, initiator, token, amount, fee, data):
        asset = self.chain.token(token)
        self.calls.append((sender, initiator, token, amount, fee, data, asset.balance_of(self.address)))
        if self.approve_repayment:
            asset.approve(self.address, sender, amount + fee)
        return self.reply


class TestFlashLender:
    """Tests for FlashLender class."""

    def test_invalid_fee(self, chain):
        with pytest.raises(ValueError):
            FlashLender(chain, fee_bps=-1)

    def test_flash_fee_rounds_down(self, lender, usdc):
        assert lender.flash_fee(usdc.mint, 1000) == 5
        assert lender.flash_fee(usdc.mint, 199) == 0

    def test_max_flash_loan(self, lender, usdc):
        assert lender.max_flash_loan(usdc.mint) == 1_000_000

    def test_callback_arguments(self, chain, lender, usdc):
        borrower = RecordingBorrower(chain)
        initiator = chain.new_address()
        usdc.mint_to(borrower.address, 5)

        lender.flash_loan(initiator, borrower, usdc.mint, 1000, b'payload')

        sender, seen_initiator, token, amount, fee, data, balance = borrower.calls[0]
        assert sender == lender.address
        assert seen_initiator == initiator
        assert token == usdc.mint
        assert (amount, fee, data) == (1000, 5, b'payload')
        # Borrowed funds are in place when the callback runs
        assert balance == 1005

    def test_repayment_pulled(self, chain, lender, usdc):
        borrower = RecordingBorrower(chain)
        usdc.mint_to(borrower.address, 5)

        assert lender.flash_loan(borrower.address, borrower, usdc.mint, 1000, b'') is True

        assert usdc.balance_of(lender.address) == 1_000_005
        assert usdc.balance_of(borrower.address) == 0

    def test_missing_approval_unwinds(self, chain, lender, usdc):
        borrower = RecordingBorrower(chain, approve_repayment=False)
        usdc.mint_to(borrower.address, 5)

        with pytest.raises(InsufficientAllowance):
            lender.flash_loan(borrower.address, borrower, usdc.mint, 1000, b'')

        assert usdc.balance_of(lender.address) == 1_000_000
        assert usdc.balance_of(borrower.address) == 5

    def test_fee_not_covered_unwinds(self, chain, lender, usdc):
        borrower = RecordingBorrower(chain)

        with pytest.raises(InsufficientBalance):
            lender.flash_loan(borrower.address, borrower, usdc.mint, 1000, b'')

        assert usdc.balance_of(lender.address) == 1_000_000
        assert usdc.allowance(borrower.address, lender.address) == 0

    def test_wrong_acknowledgement(self, chain, lender, usdc):
        borrower = RecordingBorrower(chain, reply=b'nope')
        usdc.mint_to(borrower.address, 5)

        with pytest.raises(CallbackRejected):
            lender.flash_loan(borrower.address, borrower, usdc.mint, 1000, b'')
        assert usdc.balance_of(lender.address) == 1_000_000

    def test_loan_too_large(self, chain, lender, usdc):
        borrower = RecordingBorrower(chain)
        with pytest.raises(LoanTooLarge):
            lender.flash_loan(borrower.address, borrower, usdc.mint, 1_000_001, b'')
        assert borrower.calls == []

    def test_zero_loan_rejected(self, chain, lender, usdc):
        borrower = RecordingBorrower(chain)
        with pytest.raises(ValueError):
            lender.flash_loan(borrower.address, borrower, usdc.mint, 0, b'')
