# utils.py
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext, localcontext

NUMBER_RE = re.compile(r'^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?')

CURRENCY_SYMBOLS = {"USD": "$", "SGD": "S$", "MYR": "RM", "RM": "RM", "EUR": "€", "GBP": "£"}

# bill * tip / 100 + bill has to stay inside the context exponent range
MAX_EXPONENT = getcontext().Emax // 4


def parse_amount(raw) -> Decimal:
    """
    Parse user or model input into a Decimal. Anything that doesn't start
    with a number becomes 0; trailing junk after the number is ignored ("12abc" -> 12).
    Magnitudes the arithmetic can't hold (e.g. "1e1000000") also become 0.
    """
    if raw is None or isinstance(raw, bool):
        return Decimal(0)
    if isinstance(raw, (int, Decimal)):
        value = Decimal(raw)
    elif isinstance(raw, float):
        value = Decimal(str(raw))
    else:
        s = str(raw).strip().replace('$', '').replace(',', '').strip()
        m = NUMBER_RE.match(s)
        if not m:
            return Decimal(0)
        try:
            value = Decimal(m.group(0))
        except InvalidOperation:
            return Decimal(0)
    if not value.is_finite() or abs(value.adjusted()) > MAX_EXPONENT:
        return Decimal(0)
    return value


def format_money(amount, symbol: str = "$") -> str:
    value = Decimal(amount)
    with localcontext() as ctx:
        # quantize needs room for every digit left of the point
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        value = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    if value < 0:
        return f"-{symbol}{value.copy_abs():.2f}"
    return f"{symbol}{value:.2f}"


def find_currency(code):
    if not code:
        return "$"
    return CURRENCY_SYMBOLS.get(str(code).strip().upper(), "$")
