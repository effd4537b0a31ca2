"""
In-memory execution environment: clock, token ledger and all-or-nothing units of execution.

Every balance or allowance write goes through Chain._write(), which records
a compensating entry while a unit of execution is open. If the unit raises,
entries are replayed in reverse so the ledger looks as if the attempt never ran.
"""
import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, Hashable, Iterator, List, Optional, Tuple

from solders.pubkey import Pubkey

from .errors import InsufficientAllowance, InsufficientBalance
from .utils import get_terminal_colors, short_address

colors = get_terminal_colors()
logger = logging.getLogger(__name__)

_MISSING = object()


class Chain:
    """Shared state for every contract taking part in an arbitrage attempt."""

    def __init__(self, timestamp: Optional[int] = None):
        self.timestamp = int(time.time()) if timestamp is None else int(timestamp)
        self.balances: Dict[Tuple[Pubkey, Pubkey], int] = {}  # (mint, owner) -> amount
        self.allowances: Dict[Tuple[Pubkey, Pubkey, Pubkey], int] = {}  # (mint, owner, spender) -> amount
        self.tokens: Dict[Pubkey, "Token"] = {}
        # (store, key, previous value or _MISSING)
        self._journal: List[Tuple[Dict[Any, Any], Hashable, Any]] = []
        self._depth = 0

    @staticmethod
    def new_address() -> Pubkey:
        return Pubkey.new_unique()

    def create_token(self, symbol: str, decimals: int = 6) -> "Token":
        token = Token(self, self.new_address(), symbol, decimals)
        self.tokens[token.mint] = token
        return token

    def token(self, mint: Pubkey) -> "Token":
        try:
            return self.tokens[mint]
        except KeyError:
            raise KeyError(f"Unknown token {short_address(mint)}") from None

    def advance(self, seconds: int) -> int:
        """Move the clock forward and return the new timestamp."""
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        self.timestamp += int(seconds)
        return self.timestamp

    @property
    def in_atomic(self) -> bool:
        return self._depth > 0

    @contextmanager
    def atomic(self) -> Iterator["Chain"]:
        """
        Open a unit of execution.

        Nested units act as savepoints: a failure inside an inner unit
        undoes only its own writes, unless the exception keeps propagating,
        in which case the outer unit undoes the rest. Interrupts such as
        KeyboardInterrupt unwind the same way as errors.
        """
        savepoint = len(self._journal)
        self._depth += 1
        try:
            yield self
        except BaseException:
            undone = self._rollback(savepoint)
            logger.debug(f"{colors['DIM']}Unit of execution reverted ({undone} writes undone){colors['RESET']}")
            raise
        finally:
            self._depth -= 1
            if self._depth == 0:
                self._journal.clear()

    def _write(self, store: Dict[Any, Any], key: Hashable, value: int):
        if self._depth > 0:
            self._journal.append((store, key, store.get(key, _MISSING)))
        store[key] = value

    def _rollback(self, savepoint: int) -> int:
        undone = 0
        while len(self._journal) > savepoint:
            store, key, previous = self._journal.pop()
            if previous is _MISSING:
                store.pop(key, None)
            else:
                store[key] = previous
            undone += 1
        return undone


class Token:
    """Fungible token with standard approve/transfer semantics, stored in a Chain."""

    def __init__(self, chain: Chain, mint: Pubkey, symbol: str, decimals: int = 6):
        self.chain = chain
        self.mint = mint
        self.symbol = symbol
        self.decimals = decimals

    def __repr__(self) -> str:
        return f"Token({self.symbol}, {short_address(self.mint)})"

    def balance_of(self, owner: Pubkey) -> int:
        return self.chain.balances.get((self.mint, owner), 0)

    def allowance(self, owner: Pubkey, spender: Pubkey) -> int:
        return self.chain.allowances.get((self.mint, owner, spender), 0)

    def mint_to(self, recipient: Pubkey, amount: int):
        """Create `amount` new units for `recipient` (funding pools, lenders, tests)."""
        if amount < 0:
            raise ValueError("Mint amount must be non-negative")
        self.chain._write(self.chain.balances, (self.mint, recipient), self.balance_of(recipient) + amount)

    def approve(self, owner: Pubkey, spender: Pubkey, amount: int):
        """Set the allowance to exactly `amount`; previous allowance is overwritten."""
        if amount < 0:
            raise ValueError("Allowance must be non-negative")
        self.chain._write(self.chain.allowances, (self.mint, owner, spender), amount)

    def transfer(self, sender: Pubkey, recipient: Pubkey, amount: int):
        if amount < 0:
            raise ValueError("Transfer amount must be non-negative")
        balance = self.balance_of(sender)
        if balance < amount:
            raise InsufficientBalance(
                f"{self.symbol}: {short_address(sender)} has {balance}, needs {amount}"
            )
        self.chain._write(self.chain.balances, (self.mint, sender), balance - amount)
        self.chain._write(self.chain.balances, (self.mint, recipient), self.balance_of(recipient) + amount)

    def transfer_from(self, spender: Pubkey, owner: Pubkey, recipient: Pubkey, amount: int):
        """Move `amount` from `owner` to `recipient`, spending `spender`'s allowance."""
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            raise InsufficientAllowance(
                f"{self.symbol}: {short_address(spender)} may spend {allowed} "
                f"of {short_address(owner)}, needs {amount}"
            )
        with self.chain.atomic():
            self.chain._write(self.chain.allowances, (self.mint, owner, spender), allowed - amount)
            self.transfer(owner, recipient, amount)
