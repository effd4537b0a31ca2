"""
Main entry point: builds an in-memory world and runs one flash arbitrage attempt.
"""
import logging
import sys
from dataclasses import dataclass
from typing import Optional

from solders.pubkey import Pubkey

from .chain import Chain, Token
from .config import Settings, load_settings
from .engine import FlashArbitrage
from .errors import FlashArbitrageError
from .lender import FlashLender
from .params import ArbitrageParams, Direction
from .utils import get_terminal_colors, short_address
from .venue import BPS_DENOMINATOR, ConstantProductVenue

colors = get_terminal_colors()
logger = logging.getLogger(__name__)

# Demo pools: SOL at 100 USDC on the first venue, 102 USDC on the second
USDC_DECIMALS = 6
SOL_DECIMALS = 9
FIRST_VENUE_RESERVES = (1_000_000 * 10 ** USDC_DECIMALS, 10_000 * 10 ** SOL_DECIMALS)
SECOND_VENUE_RESERVES = (1_020_000 * 10 ** USDC_DECIMALS, 10_000 * 10 ** SOL_DECIMALS)
LENDER_LIQUIDITY = 5_000_000 * 10 ** USDC_DECIMALS


def setup_logging(level: str = 'INFO', log_file: Optional[str] = 'flash_arb.log'):
    root = logging.getLogger()
    if root.handlers:
        # Already configured; basicConfig would ignore new handlers
        root.setLevel(getattr(logging, level.upper(), logging.INFO))
        return
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


@dataclass
class World:
    """Everything one demo attempt needs."""
    chain: Chain
    usdc: Token
    sol: Token
    lender: FlashLender
    engine: FlashArbitrage
    profit_receiver: Pubkey


def build_world(settings: Settings) -> World:
    chain = Chain()
    usdc = chain.create_token('USDC', USDC_DECIMALS)
    sol = chain.create_token('SOL', SOL_DECIMALS)

    first = ConstantProductVenue(chain, 'Raydium', fee_bps=settings.venue_fee_bps)
    first.add_liquidity(usdc.mint, FIRST_VENUE_RESERVES[0], sol.mint, FIRST_VENUE_RESERVES[1])
    second = ConstantProductVenue(chain, 'Orca', fee_bps=settings.venue_fee_bps)
    second.add_liquidity(usdc.mint, SECOND_VENUE_RESERVES[0], sol.mint, SECOND_VENUE_RESERVES[1])

    lender = FlashLender(chain, fee_bps=settings.flash_fee_bps)
    usdc.mint_to(lender.address, LENDER_LIQUIDITY)

    engine = FlashArbitrage(
        chain,
        lender,
        first,
        second,
        enforce_consistent_params=settings.enforce_consistent_params
    )
    receiver = settings.profit_receiver or chain.new_address()
    return World(chain, usdc, sol, lender, engine, receiver)


def build_params(world: World, amount: int, direction: Direction, settings: Settings) -> ArbitrageParams:
    """
    Derive slippage floors from current quotes.

    The hop-2 floor is never set below principal + fee + amount_required.
    """
    first, second = world.engine.select_route(direction)
    swap_quote = first.quote(amount, [world.usdc.mint, world.sol.mint])[-1]
    borrowed_quote = second.quote(swap_quote, [world.sol.mint, world.usdc.mint])[-1]

    keep = BPS_DENOMINATOR - settings.slippage_bps
    fee = world.lender.flash_fee(world.usdc.mint, amount)
    min_borrowed = max(
        borrowed_quote * keep // BPS_DENOMINATOR,
        amount + fee + settings.amount_required
    )
    return ArbitrageParams(
        swap_token=world.sol.mint,
        direction=direction,
        deadline=world.chain.timestamp + settings.deadline_seconds,
        amount_required=settings.amount_required,
        profit_receiver=world.profit_receiver,
        min_amount_swap_token=swap_quote * keep // BPS_DENOMINATOR,
        min_amount_borrowed_token=min_borrowed,
    )


def main(mode: str = 'simulate', amount: Optional[int] = None, direction: str = 'first',
         settings: Optional[Settings] = None) -> int:
    """Run the demo; returns a process exit code."""
    if settings is None:
        try:
            settings = load_settings()
        except ValueError as e:
            setup_logging()
            logger.error(f"{colors['RED']}Invalid setting:{colors['RESET']} {e}")
            return 2
    setup_logging(settings.log_level)

    problems = settings.validate()
    if problems:
        for problem in problems:
            logger.error(f"{colors['RED']}Invalid setting:{colors['RESET']} {problem}")
        return 2

    world = build_world(settings)
    amount = amount if amount is not None else 1_000 * 10 ** USDC_DECIMALS
    flag = Direction.SECOND_VENUE_THEN_FIRST if direction == 'second' else Direction.FIRST_VENUE_THEN_SECOND
    params = build_params(world, amount, flag, settings)
    first, second = world.engine.select_route(flag)

    logger.info(
        f"Route: {colors['CYAN']}USDC->SOL ({first.name}) -> USDC ({second.name}){colors['RESET']}, "
        f"borrow {colors['GREEN']}{amount / 10 ** USDC_DECIMALS:.2f} USDC{colors['RESET']}"
    )

    try:
        if mode == 'quote':
            simulated = world.engine.check_profitability(world.usdc.mint, amount, params)
            logger.info(
                f"Simulated proceeds: {colors['GREEN']}{simulated / 10 ** USDC_DECIMALS:.6f} USDC{colors['RESET']} "
                f"(floor {params.min_amount_borrowed_token / 10 ** USDC_DECIMALS:.6f})"
            )
        elif mode == 'simulate':
            world.engine.arbitrage(world.usdc.mint, amount, params)
            profit = world.usdc.balance_of(world.profit_receiver)
            logger.info(
                f"Profit: {colors['YELLOW']}{profit / 10 ** USDC_DECIMALS:.6f} USDC{colors['RESET']} "
                f"-> {short_address(world.profit_receiver)}"
            )
            logger.info(
                f"Engine retained {world.usdc.balance_of(world.engine.address)} USDC units, "
                f"lender holds {world.usdc.balance_of(world.lender.address) / 10 ** USDC_DECIMALS:.2f} USDC"
            )
        else:
            logger.error(f"Unknown mode: {mode}. Use: simulate or quote")
            return 2
    except FlashArbitrageError as e:
        logger.error(f"{colors['RED']}Arbitrage failed ({type(e).__name__}):{colors['RESET']} {e}")
        return 1

    return 0
