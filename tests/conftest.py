"""
Pytest configuration and fixtures for flash arbitrage engine tests.
"""
from typing import List, Sequence

import pytest
from solders.pubkey import Pubkey

from flash_arb.chain import Chain
from flash_arb.engine import FlashArbitrage
from flash_arb.errors import DeadlineExpired, SlippageExceeded
from flash_arb.lender import FlashLender
from flash_arb.params import ArbitrageParams, Direction
from flash_arb.venue import ConstantProductVenue, Venue

NOW = 1_700_000_000


class ScriptedVenue(Venue):
    """Venue returning fixed amounts, for exact-number scenarios."""

    def __init__(self, chain: Chain, name: str, quote_out: int, exchange_out: int):
        self.chain = chain
        self.name = name
        self.address = chain.new_address()
        self.quote_out = quote_out
        self.exchange_out = exchange_out
        self.quote_calls: List[tuple] = []
        self.allowance_seen: List[int] = []

    def quote(self, amount_in: int, path: Sequence[Pubkey]) -> List[int]:
        self.quote_calls.append((amount_in, list(path)))
        return [amount_in, self.quote_out]

    def exchange(self, sender, amount_in, amount_out_min, path, recipient, deadline):
        if self.chain.timestamp > deadline:
            raise DeadlineExpired(f"{self.name}: deadline passed")
        if self.exchange_out < amount_out_min:
            raise SlippageExceeded(f"{self.name}: {self.exchange_out} < {amount_out_min}")
        token_in = self.chain.token(path[0])
        self.allowance_seen.append(token_in.allowance(sender, self.address))
        token_in.transfer_from(self.address, sender, self.address, amount_in)
        self.chain.token(path[-1]).transfer(self.address, recipient, self.exchange_out)
        return [amount_in, self.exchange_out]


@pytest.fixture
def chain():
    """Chain with a fixed clock."""
    return Chain(timestamp=NOW)


@pytest.fixture
def usdc(chain):
    return chain.create_token('USDC', 6)


@pytest.fixture
def sol(chain):
    return chain.create_token('SOL', 9)


@pytest.fixture
def profit_receiver(chain):
    return chain.new_address()


@pytest.fixture
def lender(chain, usdc):
    """Lender charging 50 bps (fee of 5 on 1000), funded with 1,000,000 USDC units."""
    lender = FlashLender(chain, fee_bps=50)
    usdc.mint_to(lender.address, 1_000_000)
    return lender


@pytest.fixture
def scripted_venues(chain, usdc, sol):
    """
    Venues for the reference scenario: hop 1 quotes 1200 SOL, fills 1190;
    hop 2 quotes 1010 USDC, fills 1009.
    """
    first = ScriptedVenue(chain, 'VenueA', quote_out=1200, exchange_out=1190)
    second = ScriptedVenue(chain, 'VenueB', quote_out=1010, exchange_out=1009)
    sol.mint_to(first.address, 10_000)
    usdc.mint_to(second.address, 10_000)
    return first, second


@pytest.fixture
def scripted_engine(chain, lender, scripted_venues):
    first, second = scripted_venues
    return FlashArbitrage(chain, lender, first, second)


@pytest.fixture
def scenario_params(sol, profit_receiver):
    """Parameters of the reference scenario (amount 1000, fee 5)."""
    return ArbitrageParams(
        swap_token=sol.mint,
        direction=Direction.FIRST_VENUE_THEN_SECOND,
        deadline=NOW + 60,
        amount_required=3,
        profit_receiver=profit_receiver,
        min_amount_swap_token=1100,
        min_amount_borrowed_token=1008,
    )


@pytest.fixture
def amm_venues(chain, usdc, sol):
    """Two constant-product venues: SOL at 100 USDC on the first, 102 on the second."""
    first = ConstantProductVenue(chain, 'Raydium', fee_bps=30)
    first.add_liquidity(usdc.mint, 10_000_000_000_000, sol.mint, 100_000_000_000_000)
    second = ConstantProductVenue(chain, 'Orca', fee_bps=30)
    second.add_liquidity(usdc.mint, 10_200_000_000_000, sol.mint, 100_000_000_000_000)
    return first, second


@pytest.fixture
def amm_lender(chain, usdc):
    """9 bps lender with 10,000 USDC."""
    lender = FlashLender(chain, fee_bps=9)
    usdc.mint_to(lender.address, 10_000_000_000)
    return lender


@pytest.fixture
def amm_engine(chain, amm_lender, amm_venues):
    first, second = amm_venues
    return FlashArbitrage(chain, amm_lender, first, second)
