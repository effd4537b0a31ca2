"""
Arbitrage parameters and their wire form for the loan callback.

The engine encodes ArbitrageParams into opaque bytes when it requests a loan
and decodes them again inside the callback. Decoding fails closed.
"""
from dataclasses import dataclass
from enum import IntEnum

from solders.pubkey import Pubkey

from .errors import MalformedParams

WORD_SIZE = 32
ADDRESS_SIZE = 32
MAX_UINT64 = 2 ** 64 - 1
ENCODED_SIZE = 2 * ADDRESS_SIZE + 1 + 4 * WORD_SIZE
# Integers are 64-bit values left-padded with zeros to a full word
PADDING_SIZE = WORD_SIZE - 8


class Direction(IntEnum):
    """Which venue takes the first hop."""
    FIRST_VENUE_THEN_SECOND = 0
    SECOND_VENUE_THEN_FIRST = 1


@dataclass(frozen=True)
class ArbitrageParams:
    """Everything the callback needs besides the loan itself."""
    swap_token: Pubkey  # intermediate asset
    direction: Direction
    deadline: int  # unix seconds, applies to both hops
    amount_required: int  # surplus that must stay with the engine after repayment
    profit_receiver: Pubkey
    min_amount_swap_token: int  # floor for hop 1
    min_amount_borrowed_token: int  # floor for hop 2

    def __post_init__(self):
        if not isinstance(self.direction, Direction):
            # Accept raw ints, reject anything outside the enum
            object.__setattr__(self, 'direction', Direction(self.direction))
        for field_name in ('deadline', 'amount_required', 'min_amount_swap_token', 'min_amount_borrowed_token'):
            value = getattr(self, field_name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"{field_name} must be an int, got {type(value).__name__}")
            if not 0 <= value <= MAX_UINT64:
                raise ValueError(f"{field_name} out of range: {value}")


def _word(value: int) -> bytes:
    return value.to_bytes(WORD_SIZE, 'big')


def encode_params(params: ArbitrageParams) -> bytes:
    """Fixed layout: swap_token | profit_receiver | direction(1) | deadline | amount_required | min_swap | min_borrowed."""
    return b''.join((
        bytes(params.swap_token),
        bytes(params.profit_receiver),
        bytes((int(params.direction),)),
        _word(params.deadline),
        _word(params.amount_required),
        _word(params.min_amount_swap_token),
        _word(params.min_amount_borrowed_token),
    ))


def decode_params(data: bytes) -> ArbitrageParams:
    """
    Decode callback data produced by encode_params().

    Raises:
        MalformedParams: wrong type or length, an unknown direction byte,
            or a word with non-zero padding
    """
    if not isinstance(data, (bytes, bytearray)):
        raise MalformedParams(f"Expected bytes, got {type(data).__name__}")
    if len(data) != ENCODED_SIZE:
        raise MalformedParams(f"Expected {ENCODED_SIZE} bytes, got {len(data)}")

    data = bytes(data)
    offset = 0
    swap_token = Pubkey.from_bytes(data[offset:offset + ADDRESS_SIZE])
    offset += ADDRESS_SIZE
    profit_receiver = Pubkey.from_bytes(data[offset:offset + ADDRESS_SIZE])
    offset += ADDRESS_SIZE

    direction_byte = data[offset]
    offset += 1
    try:
        direction = Direction(direction_byte)
    except ValueError:
        raise MalformedParams(f"Unknown direction {direction_byte}") from None

    words = []
    for name in ('deadline', 'amount_required', 'min_amount_swap_token', 'min_amount_borrowed_token'):
        word = data[offset:offset + WORD_SIZE]
        if any(word[:PADDING_SIZE]):
            raise MalformedParams(f"Non-canonical padding in {name} at offset {offset}")
        words.append(int.from_bytes(word, 'big'))
        offset += WORD_SIZE
    deadline, amount_required, min_swap, min_borrowed = words

    return ArbitrageParams(
        swap_token=swap_token,
        direction=direction,
        deadline=deadline,
        amount_required=amount_required,
        profit_receiver=profit_receiver,
        min_amount_swap_token=min_swap,
        min_amount_borrowed_token=min_borrowed,
    )
