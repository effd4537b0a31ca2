"""
Flash arbitrage engine.

Borrows an asset from a flash lender, swaps it into an intermediate token on
one venue and back on the other, repays principal + fee and forwards the
surplus to the profit receiver. Everything happens inside the lender's unit
of execution, so any failure leaves no trace.

Flow:
    arbitrage() -> profitability guard -> lender.flash_loan()
        -> on_flash_loan(): trust gate -> route -> hop 1 -> hop 2 -> settlement
"""
import logging
from typing import Sequence, Tuple

from solders.pubkey import Pubkey

from .chain import Chain
from .errors import (
    AmountOutTooLow,
    InconsistentParams,
    InsufficientProceeds,
    UntrustedInitiator,
    UntrustedLender,
)
from .lender import CALLBACK_SUCCESS, FlashLender
from .params import ArbitrageParams, Direction, decode_params, encode_params
from .utils import get_terminal_colors, short_address
from .venue import Venue

colors = get_terminal_colors()
logger = logging.getLogger(__name__)


def select_route(direction: Direction, first_venue: Venue, second_venue: Venue) -> Tuple[Venue, Venue]:
    """Ordered (hop 1 venue, hop 2 venue) for a direction flag."""
    if direction == Direction.SECOND_VENUE_THEN_FIRST:
        return second_venue, first_venue
    return first_venue, second_venue


def settlement_profit(amount: int, fee: int, received: int, amount_required: int) -> int:
    """
    Surplus left for the profit receiver after repayment and the retained floor.

    Raises:
        InsufficientProceeds: received < amount + fee + amount_required
    """
    repay = amount + fee
    if received < repay + amount_required:
        raise InsufficientProceeds(
            f"Received {received}, need {repay} to repay and {amount_required} to retain"
        )
    return received - repay - amount_required


class FlashArbitrage:
    """Two-venue flash loan arbitrage contract."""

    def __init__(
        self,
        chain: Chain,
        lender: FlashLender,
        first_venue: Venue,
        second_venue: Venue,
        enforce_consistent_params: bool = True
    ):
        """
        Args:
            chain: Execution environment holding balances and the clock
            lender: The only lending facility whose callbacks are accepted
            first_venue: Venue used first for FIRST_VENUE_THEN_SECOND
            second_venue: Venue used first for SECOND_VENUE_THEN_FIRST
            enforce_consistent_params: Reject requests whose hop-2 floor cannot
                cover principal + fee + amount_required before borrowing
        """
        self.chain = chain
        self._lender = lender
        self._first_venue = first_venue
        self._second_venue = second_venue
        self.enforce_consistent_params = enforce_consistent_params
        self.address = chain.new_address()

    @property
    def lender(self) -> FlashLender:
        return self._lender

    @property
    def first_venue(self) -> Venue:
        return self._first_venue

    @property
    def second_venue(self) -> Venue:
        return self._second_venue

    # Entry point

    def arbitrage(self, borrowed_token: Pubkey, amount: int, params: ArbitrageParams):
        """
        Run one arbitrage attempt. Either every step succeeds or nothing changes.

        Raises:
            InconsistentParams: request can never settle
            AmountOutTooLow: simulated proceeds below min_amount_borrowed_token
            FlashArbitrageError: any failure inside the loan callback
        """
        if self.enforce_consistent_params:
            self.check_params(borrowed_token, amount, params)
        self.check_profitability(borrowed_token, amount, params)

        data = encode_params(params)
        with self.chain.atomic():
            self._lender.flash_loan(self.address, self, borrowed_token, amount, data)

    def check_params(self, borrowed_token: Pubkey, amount: int, params: ArbitrageParams):
        """Hop-2 floor must cover principal, lender fee and the retained surplus."""
        if amount <= 0:
            raise InconsistentParams("Loan amount must be positive")
        if params.swap_token == borrowed_token:
            raise InconsistentParams("Swap token must differ from the borrowed token")
        fee = self._lender.flash_fee(borrowed_token, amount)
        needed = amount + fee + params.amount_required
        if params.min_amount_borrowed_token < needed:
            raise InconsistentParams(
                f"min_amount_borrowed_token {params.min_amount_borrowed_token} "
                f"< amount + fee + amount_required = {needed}"
            )

    def check_profitability(self, borrowed_token: Pubkey, amount: int, params: ArbitrageParams) -> int:
        """
        Simulate both hops against current venue state.

        Advisory only: prices can move before the real swaps, whose floors
        are the binding guarantee.

        Returns:
            Simulated amount of borrowed token after hop 2
        """
        first, second = self.select_route(params.direction)
        swap_out = first.quote(amount, [borrowed_token, params.swap_token])[-1]
        borrowed_out = second.quote(swap_out, [params.swap_token, borrowed_token])[-1]
        if borrowed_out < params.min_amount_borrowed_token:
            raise AmountOutTooLow(
                f"Simulated {borrowed_out} < minimum {params.min_amount_borrowed_token} "
                f"via {first.name} -> {second.name}"
            )
        logger.debug(
            f"Pre-flight {first.name} -> {second.name}: "
            f"{colors['GREEN']}{amount} -> {swap_out} -> {borrowed_out}{colors['RESET']}"
        )
        return borrowed_out

    # Loan callback

    def on_flash_loan(
        self,
        sender: Pubkey,
        initiator: Pubkey,
        token: Pubkey,
        amount: int,
        fee: int,
        data: bytes
    ) -> bytes:
        self.check_trust(sender, initiator)
        params = decode_params(data)

        first, second = self.select_route(params.direction)
        swap_received = self._swap(
            first, token, params.swap_token, amount, params.min_amount_swap_token, params.deadline
        )
        borrowed_received = self._swap(
            second, params.swap_token, token, swap_received, params.min_amount_borrowed_token, params.deadline
        )

        self._settle(token, amount, fee, borrowed_received, params.amount_required, params.profit_receiver)
        return CALLBACK_SUCCESS

    def check_trust(self, sender: Pubkey, initiator: Pubkey):
        if sender != self._lender.address:
            raise UntrustedLender(f"Callback from {short_address(sender)} is not the configured lender")
        if initiator != self.address:
            raise UntrustedInitiator(f"Loan initiated by {short_address(initiator)}, not this engine")

    def select_route(self, direction: Direction) -> Tuple[Venue, Venue]:
        return select_route(direction, self._first_venue, self._second_venue)

    def _swap(
        self,
        venue: Venue,
        token_in: Pubkey,
        token_out: Pubkey,
        amount_in: int,
        min_amount_out: int,
        deadline: int
    ) -> int:
        # Allowance is overwritten, never topped up
        self.chain.token(token_in).approve(self.address, venue.address, amount_in)
        path: Sequence[Pubkey] = [token_in, token_out]
        amounts = venue.exchange(self.address, amount_in, min_amount_out, path, self.address, deadline)
        return amounts[-1]

    def _settle(
        self,
        token: Pubkey,
        amount: int,
        fee: int,
        received: int,
        amount_required: int,
        profit_receiver: Pubkey
    ) -> int:
        profit = settlement_profit(amount, fee, received, amount_required)
        asset = self.chain.token(token)
        asset.transfer(self.address, profit_receiver, profit)
        asset.approve(self.address, self._lender.address, amount + fee)

        logger.info(
            f"{colors['CYAN']}Settled{colors['RESET']} {asset.symbol}: "
            f"received {colors['GREEN']}{received}{colors['RESET']}, "
            f"repay {colors['GREEN']}{amount + fee}{colors['RESET']}, "
            f"profit {colors['YELLOW']}{profit}{colors['RESET']} -> {short_address(profit_receiver)}"
        )
        return profit
