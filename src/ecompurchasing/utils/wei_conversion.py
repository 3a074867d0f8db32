"""Wei conversion utilities for precise amount handling."""

from decimal import Decimal, InvalidOperation

from eth_utils import from_wei, to_wei

DEFAULT_UNIT = "ether"


class WeiConverter:
    """Converts human amounts to integer wei and back.

    Amounts are accepted as ``int`` (already wei), ``Decimal``/numeric strings
    (wei unless a unit is given) or strings with an explicit unit such as
    ``"0.5 ether"`` or ``"20 gwei"``.
    """

    def __init__(self, display_unit: str = DEFAULT_UNIT):
        to_wei(0, display_unit)  # validates the unit name
        self.display_unit = display_unit

    def to_wei(self, amount, unit: str | None = None) -> int:
        """Convert an amount to integer wei."""
        if isinstance(amount, bool):
            raise TypeError("Boolean is not a valid amount")

        if isinstance(amount, int) and unit is None:
            value = amount
        else:
            number, parsed_unit = self._split(amount)
            unit = unit or parsed_unit or "wei"
            exact = Decimal(number) * Decimal(to_wei(1, unit))
            if not exact.is_finite():
                raise ValueError(f"Amount must be finite: {amount!r}")
            if exact != exact.to_integral_value():
                raise ValueError(f"Amount {amount!r} is not a whole number of wei")
            value = int(exact)

        if value < 0:
            raise ValueError(f"Amount must not be negative: {amount!r}")
        return value

    def from_wei(self, value: int, unit: str | None = None) -> Decimal:
        """Convert integer wei to a Decimal in ``unit`` (display unit by default)."""
        return Decimal(from_wei(value, unit or self.display_unit))

    def format(self, value: int, unit: str | None = None) -> str:
        """Format wei for logs, e.g. ``'0.1 ether'``."""
        unit = unit or self.display_unit
        amount = self.from_wei(value, unit).normalize()
        # normalize() gives exponent notation for round numbers (1E+2)
        return f"{amount:f} {unit}"

    @staticmethod
    def _split(amount) -> tuple[str, str | None]:
        """Split ``'1.5 ether'`` into ``('1.5', 'ether')``."""
        text = str(amount).strip()
        parts = text.split()
        if len(parts) == 1:
            number, unit = parts[0], None
        elif len(parts) == 2:
            number, unit = parts[0], parts[1].lower()
        else:
            raise ValueError(f"Cannot parse amount: {amount!r}")

        try:
            Decimal(number)
        except InvalidOperation as e:
            raise ValueError(f"Cannot parse amount: {amount!r}") from e

        return number, unit
