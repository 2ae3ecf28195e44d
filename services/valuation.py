"""
Costo promedio ponderado.

Funciones puras (sin acceso a base de datos): se usan tanto para aplicar un
movimiento nuevo como para reconstruir las existencias de un producto a
partir de sus movimientos restantes después de una reversión.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, NamedTuple

from models.kardex import MoveType

PRECISION = Decimal("0.000001")
ZERO = Decimal("0")


def quantize(val) -> Decimal:
    """Redondea a 6 decimales. Acepta Decimal, int, float o str (coma o punto)."""
    if val is None:
        return ZERO.quantize(PRECISION)
    if isinstance(val, Decimal):
        d = val
    else:
        s = str(val).strip().replace(",", ".")
        try:
            d = Decimal(s) if s else ZERO
        except (InvalidOperation, ValueError):
            raise ValueError(f"Valor numérico inválido: {val!r}")
    if not d.is_finite():
        raise ValueError(f"Valor numérico inválido: {val!r}")
    try:
        return d.quantize(PRECISION, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # no cabe en 28 dígitos con 6 decimales
        raise ValueError(f"Valor numérico fuera de rango: {val!r}")


class StockState(NamedTuple):
    on_hand: Decimal
    avg_cost: Decimal


EMPTY = StockState(quantize(0), quantize(0))


def fold(state: StockState, move_type, qty, unit_cost=None) -> StockState:
    """Aplica un movimiento a (on_hand, avg_cost)."""
    on_hand = quantize(state.on_hand)
    avg_cost = quantize(state.avg_cost)
    q = quantize(qty)
    move_type = MoveType(move_type)

    if move_type in (MoveType.IN, MoveType.ADJUST):
        cost = quantize(unit_cost)
        new_on_hand = quantize(on_hand + q)
        if new_on_hand <= 0:
            # piso: no hay promedio con existencias <= 0
            return StockState(new_on_hand, quantize(0))
        new_avg = quantize((on_hand * avg_cost + q * cost) / new_on_hand)
        return StockState(new_on_hand, new_avg)

    # OUT: vender no cambia el costo promedio de lo que queda
    return StockState(quantize(on_hand - q), avg_cost)


def replay(movements: Iterable) -> StockState:
    """
    Recalcula desde cero. `movements` son objetos con timestamp, move_type,
    qty y unit_cost (InventoryMovement sirve).
    """
    state = EMPTY
    for m in sorted(movements, key=lambda m: m.timestamp or 0):
        state = fold(state, m.move_type, m.qty, m.unit_cost)
    return state
