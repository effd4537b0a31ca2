"""
Trading venues: the quote/exchange capability the engine trades against,
and a constant-product pool router that implements it in memory.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Sequence, Tuple

from solders.pubkey import Pubkey

from .chain import Chain
from .errors import DeadlineExpired, InsufficientLiquidity, InvalidPath, SlippageExceeded
from .utils import get_terminal_colors, short_address

colors = get_terminal_colors()
logger = logging.getLogger(__name__)

BPS_DENOMINATOR = 10_000


class Venue(ABC):
    """
    Capability every venue exposes to the engine.

    Paths are ordered sequences of token mints. Both methods return one
    amount per path element, the first being the input amount.
    """

    address: Pubkey
    name: str

    @abstractmethod
    def quote(self, amount_in: int, path: Sequence[Pubkey]) -> List[int]:
        """Read-only: amounts the path would yield against current state."""

    @abstractmethod
    def exchange(
        self,
        sender: Pubkey,
        amount_in: int,
        amount_out_min: int,
        path: Sequence[Pubkey],
        recipient: Pubkey,
        deadline: int
    ) -> List[int]:
        """
        Swap `amount_in` of path[0] pulled from `sender` (via allowance granted
        to this venue) and pay the output of path[-1] to `recipient`.

        Raises:
            DeadlineExpired: chain clock is past `deadline`
            SlippageExceeded: output would be below `amount_out_min`
        """


@dataclass
class Pool:
    """Constant-product pool; reserves are the token balances held by `address`."""
    address: Pubkey
    mint_a: Pubkey
    mint_b: Pubkey


def get_amount_out(amount_in: int, reserve_in: int, reserve_out: int, fee_bps: int) -> int:
    """x*y=k output with the fee taken from the input side, rounded down."""
    if amount_in <= 0:
        raise InsufficientLiquidity("Input amount must be positive")
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidity("Pool has no liquidity")
    amount_in_with_fee = amount_in * (BPS_DENOMINATOR - fee_bps)
    numerator = amount_in_with_fee * reserve_out
    denominator = reserve_in * BPS_DENOMINATOR + amount_in_with_fee
    return numerator // denominator


class ConstantProductVenue(Venue):
    """Router over a set of two-token constant-product pools sharing one fee."""

    def __init__(self, chain: Chain, name: str, fee_bps: int = 30):
        if not 0 <= fee_bps < BPS_DENOMINATOR:
            raise ValueError(f"fee_bps must be in [0, {BPS_DENOMINATOR}), got {fee_bps}")
        self.chain = chain
        self.name = name
        self.fee_bps = fee_bps
        self.address = chain.new_address()
        self.pools: Dict[FrozenSet[Pubkey], Pool] = {}

    def __repr__(self) -> str:
        return f"ConstantProductVenue({self.name}, fee={self.fee_bps}bps)"

    def add_liquidity(self, mint_a: Pubkey, amount_a: int, mint_b: Pubkey, amount_b: int) -> Pool:
        """Seed (or top up) the pool for a pair by minting reserves into it."""
        if mint_a == mint_b:
            raise InvalidPath("Pool needs two distinct tokens")
        key = frozenset((mint_a, mint_b))
        pool = self.pools.get(key)
        if pool is None:
            pool = Pool(address=self.chain.new_address(), mint_a=mint_a, mint_b=mint_b)
            self.pools[key] = pool
        self.chain.token(mint_a).mint_to(pool.address, amount_a)
        self.chain.token(mint_b).mint_to(pool.address, amount_b)
        return pool

    def get_reserves(self, mint_in: Pubkey, mint_out: Pubkey) -> Tuple[int, int]:
        pool = self._pool(mint_in, mint_out)
        return (
            self.chain.token(mint_in).balance_of(pool.address),
            self.chain.token(mint_out).balance_of(pool.address),
        )

    def _pool(self, mint_in: Pubkey, mint_out: Pubkey) -> Pool:
        pool = self.pools.get(frozenset((mint_in, mint_out)))
        if pool is None or mint_in == mint_out:
            raise InvalidPath(
                f"{self.name}: no pool for {short_address(mint_in)} -> {short_address(mint_out)}"
            )
        return pool

    def _check_path(self, path: Sequence[Pubkey]):
        if len(path) != 2:
            raise InvalidPath(f"{self.name}: only two-token paths are supported, got {len(path)}")

    def quote(self, amount_in: int, path: Sequence[Pubkey]) -> List[int]:
        self._check_path(path)
        reserve_in, reserve_out = self.get_reserves(path[0], path[1])
        return [amount_in, get_amount_out(amount_in, reserve_in, reserve_out, self.fee_bps)]

    def exchange(
        self,
        sender: Pubkey,
        amount_in: int,
        amount_out_min: int,
        path: Sequence[Pubkey],
        recipient: Pubkey,
        deadline: int
    ) -> List[int]:
        if self.chain.timestamp > deadline:
            raise DeadlineExpired(
                f"{self.name}: deadline {deadline} passed (now {self.chain.timestamp})"
            )
        amounts = self.quote(amount_in, path)
        if amounts[-1] < amount_out_min:
            raise SlippageExceeded(
                f"{self.name}: output {amounts[-1]} below floor {amount_out_min}"
            )

        pool = self._pool(path[0], path[1])
        token_in = self.chain.token(path[0])
        token_out = self.chain.token(path[1])
        with self.chain.atomic():
            token_in.transfer_from(self.address, sender, pool.address, amount_in)
            token_out.transfer(pool.address, recipient, amounts[-1])

        logger.debug(
            f"{colors['CYAN']}{self.name}{colors['RESET']}: "
            f"{colors['GREEN']}{amount_in} {token_in.symbol}{colors['RESET']} -> "
            f"{colors['GREEN']}{amounts[-1]} {token_out.symbol}{colors['RESET']}"
        )
        return amounts
