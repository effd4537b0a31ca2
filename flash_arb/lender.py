"""
Uncollateralized lending facility.

The lender transfers funds to a borrower, invokes its callback and pulls
principal + fee back through an allowance, all inside one unit of execution.
If anything fails, the loan transfer itself is undone.
"""
import hashlib
import logging
from typing import Protocol

from solders.pubkey import Pubkey

from .chain import Chain
from .errors import CallbackRejected, LoanTooLarge
from .utils import get_terminal_colors, short_address

colors = get_terminal_colors()
logger = logging.getLogger(__name__)

# Value a borrower returns to accept settlement
CALLBACK_SUCCESS = hashlib.sha256(b"FlashBorrower.on_flash_loan").digest()

BPS_DENOMINATOR = 10_000


class FlashBorrower(Protocol):
    """Callback side of the flash loan protocol."""

    address: Pubkey

    def on_flash_loan(
        self,
        sender: Pubkey,
        initiator: Pubkey,
        token: Pubkey,
        amount: int,
        fee: int,
        data: bytes
    ) -> bytes:
        ...


class FlashLender:
    """Flash lender holding its liquidity as token balances on the chain."""

    def __init__(self, chain: Chain, fee_bps: int = 9):
        if not 0 <= fee_bps < BPS_DENOMINATOR:
            raise ValueError(f"fee_bps must be in [0, {BPS_DENOMINATOR}), got {fee_bps}")
        self.chain = chain
        self.fee_bps = fee_bps
        self.address = chain.new_address()

    def max_flash_loan(self, token: Pubkey) -> int:
        return self.chain.token(token).balance_of(self.address)

    def flash_fee(self, token: Pubkey, amount: int) -> int:
        """Fee charged on a loan of `amount`, rounded down."""
        return amount * self.fee_bps // BPS_DENOMINATOR

    def flash_loan(
        self,
        initiator: Pubkey,
        receiver: FlashBorrower,
        token: Pubkey,
        amount: int,
        data: bytes
    ) -> bool:
        """
        Lend `amount` of `token` to `receiver` for the duration of its callback.

        Args:
            initiator: Identity that requested the loan, forwarded to the callback
            receiver: Borrower whose on_flash_loan() is invoked
            token: Mint of the borrowed asset
            amount: Principal
            data: Opaque bytes forwarded untouched

        Returns:
            True once principal + fee have been pulled back

        Raises:
            LoanTooLarge: lender holds less than `amount`
            CallbackRejected: callback did not return CALLBACK_SUCCESS
            InsufficientAllowance: borrower did not authorize repayment
        """
        if amount <= 0:
            raise ValueError("Loan amount must be positive")
        available = self.max_flash_loan(token)
        if amount > available:
            raise LoanTooLarge(f"Requested {amount}, lender holds {available}")

        asset = self.chain.token(token)
        fee = self.flash_fee(token, amount)
        logger.debug(
            f"{colors['DIM']}Flash loan: {amount} {asset.symbol} to "
            f"{short_address(receiver.address)} (fee {fee}){colors['RESET']}"
        )

        with self.chain.atomic():
            asset.transfer(self.address, receiver.address, amount)
            result = receiver.on_flash_loan(self.address, initiator, token, amount, fee, data)
            if result != CALLBACK_SUCCESS:
                raise CallbackRejected(f"Borrower {short_address(receiver.address)} rejected the loan")
            asset.transfer_from(self.address, receiver.address, self.address, amount + fee)

        logger.debug(f"{colors['DIM']}Flash loan repaid: {amount + fee} {asset.symbol}{colors['RESET']}")
        return True
