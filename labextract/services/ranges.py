import math
from decimal import Decimal

from labextract.schemas.biomarker import BiomarkerStatus, RangeClassification

BORDERLINE_MARGIN = 0.1
# The extraction contract maps open-ended ranges such as ">40" to referenceMax 999.
OPEN_UPPER_BOUND = 900


def is_finite_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # ints beyond float range
        return False


def format_bound(value: float) -> str:
    """Render a bound the way the lab report prints it: 12.0 -> "12", 4.1 -> "4.1".

    Integers are written out below 1e21 and small fractions down to 1e-6;
    anything else uses the short exponent form, 1e+30 or 1.5e-7.
    """
    value = float(value)
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    text = repr(value)
    mantissa, _, exponent = text.partition("e")
    if not exponent:
        return text
    power = int(exponent)
    if -6 <= power < 21:
        return format(Decimal(text), "f")
    return f"{mantissa}e{'+' if power > 0 else '-'}{abs(power)}"


def classify_status(value: float, reference_min: float | None = None, reference_max: float | None = None) -> BiomarkerStatus:
    has_min = is_finite_number(reference_min)
    has_max = is_finite_number(reference_max)

    if has_min and has_max:
        if reference_min <= value <= reference_max:
            return BiomarkerStatus.IN_RANGE
        below = reference_min * (1 - BORDERLINE_MARGIN) <= value < reference_min
        above = reference_max < value <= reference_max * (1 + BORDERLINE_MARGIN)
        if below or above:
            return BiomarkerStatus.BORDERLINE
        return BiomarkerStatus.OUT_OF_RANGE

    if has_max:
        if value <= reference_max:
            return BiomarkerStatus.IN_RANGE
        if value <= reference_max * (1 + BORDERLINE_MARGIN):
            return BiomarkerStatus.BORDERLINE
        return BiomarkerStatus.OUT_OF_RANGE

    if has_min:
        if value >= reference_min:
            return BiomarkerStatus.IN_RANGE
        if value >= reference_min * (1 - BORDERLINE_MARGIN):
            return BiomarkerStatus.BORDERLINE
        return BiomarkerStatus.OUT_OF_RANGE

    return BiomarkerStatus.UNKNOWN


def display_range(reference_min: float | None = None, reference_max: float | None = None) -> str:
    has_min = is_finite_number(reference_min)
    has_max = is_finite_number(reference_max)

    if has_min and has_max and reference_min == 0 and 0 < reference_max < OPEN_UPPER_BOUND:
        return f"<{format_bound(reference_max)}"
    if has_min and has_max and reference_max >= OPEN_UPPER_BOUND:
        return f">{format_bound(reference_min)}"
    if has_min and has_max:
        return f"{format_bound(reference_min)}-{format_bound(reference_max)}"
    return "N/A"


def classify(value: float, reference_min: float | None = None, reference_max: float | None = None) -> RangeClassification:
    """Clinical status plus display range for one reading.

    Total over its inputs: a NaN value or missing bounds never raise, they
    fall through to out-of-range or unknown.
    """
    return RangeClassification(
        status=classify_status(value, reference_min, reference_max),
        display_range=display_range(reference_min, reference_max),
    )
