"""KPI evaluation for submitted results.

Each result compares the achieved value with the KPI target. A result is
``Exceeded`` at 120% of target or more, ``Met`` at 100%, otherwise
``Not Met``. Results whose target or achieved value is not a number, or whose
target is not positive, stay ``Pending`` and are left out of the totals.

The achievement ratio averages achieved/target over the evaluated results,
capping each at 1.5. It drives the suggested review decision and the payout
multiplier.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Optional

KPI_PENDING = 'Pending'
KPI_MET = 'Met'
KPI_EXCEEDED = 'Exceeded'
KPI_NOT_MET = 'Not Met'

EXCEEDED_FACTOR = Decimal('1.2')
RATIO_CAP = Decimal('1.5')
REVISION_THRESHOLD = Decimal('0.8')

# Payout scales linearly from MIN_MULTIPLIER at FLOOR_RATIO to 1 at a ratio of 1
FLOOR_RATIO = Decimal('0.7')
MIN_MULTIPLIER = Decimal('0.5')

# Submission statuses suggested to reviewers
SUGGEST_APPROVE = 'Approved'
SUGGEST_REVISION = 'Revision Requested'
SUGGEST_REJECT = 'Rejected'

CENTS = Decimal('0.01')

def _number(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return number if number.is_finite() else None

def _pair(target: Any, achieved: Any):
    """Return (target, achieved) as Decimals, or None if not evaluable."""
    target_number = _number(target)
    if target_number is None or target_number <= 0:
        return None
    # A blank achieved value counts as nothing achieved
    if achieved is None or str(achieved).strip() == '':
        return target_number, Decimal(0)
    achieved_number = _number(achieved)
    if achieved_number is None:
        return None
    return target_number, achieved_number

def kpi_status(target: Any, achieved: Any) -> str:
    """Classify one result as Exceeded, Met, Not Met or Pending."""
    pair = _pair(target, achieved)
    if pair is None:
        return KPI_PENDING
    target_number, achieved_number = pair
    if achieved_number >= target_number * EXCEEDED_FACTOR:
        return KPI_EXCEEDED
    if achieved_number >= target_number:
        return KPI_MET
    return KPI_NOT_MET

def percentage_achieved(target: Any, achieved: Any) -> Optional[int]:
    """Achieved value as a whole percentage of the target."""
    pair = _pair(target, achieved)
    if pair is None:
        return None
    target_number, achieved_number = pair
    percentage = achieved_number / target_number * 100
    return int(percentage.quantize(Decimal('1'), rounding=ROUND_HALF_UP))

def payment_multiplier(ratio: Decimal) -> Decimal:
    if ratio < FLOOR_RATIO:
        multiplier = MIN_MULTIPLIER
    elif ratio >= 1:
        multiplier = Decimal(1)
    else:
        multiplier = MIN_MULTIPLIER + (ratio - FLOOR_RATIO) / (1 - FLOOR_RATIO) * (1 - MIN_MULTIPLIER)
    return multiplier.quantize(CENTS, rounding=ROUND_HALF_UP)

def evaluate_kpis(results: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Evaluate a submission's KPI results.

    Args:
        results: Dicts with 'target' and 'achieved'

    Returns:
        Dict with:
        - results: one {'status', 'percentage_achieved'} per input, in order
        - all_kpis_met: True when there is at least one result and every
          result is Met or Exceeded
        - kpi_achievement_ratio: mean capped ratio, or None with nothing to evaluate
        - auto_suggestion: suggested submission status, or None
        - payment_multiplier: payout share between 0.5 and 1, or None
    """
    evaluated = []
    ratios = []
    for result in results:
        target, achieved = result.get('target'), result.get('achieved')
        status = kpi_status(target, achieved)
        evaluated.append({
            'status': status,
            'percentage_achieved': percentage_achieved(target, achieved)
        })
        if status != KPI_PENDING:
            target_number, achieved_number = _pair(target, achieved)
            ratios.append(min(achieved_number / target_number, RATIO_CAP))

    all_met = bool(evaluated) and all(
        r['status'] in (KPI_MET, KPI_EXCEEDED) for r in evaluated
    )

    if not ratios:
        return {
            'results': evaluated,
            'all_kpis_met': False,
            'kpi_achievement_ratio': None,
            'auto_suggestion': None,
            'payment_multiplier': None
        }

    ratio = sum(ratios) / len(ratios)
    if all_met:
        suggestion = SUGGEST_APPROVE
    elif ratio >= REVISION_THRESHOLD:
        suggestion = SUGGEST_REVISION
    else:
        suggestion = SUGGEST_REJECT

    return {
        'results': evaluated,
        'all_kpis_met': all_met,
        'kpi_achievement_ratio': ratio.quantize(Decimal('0.0001'), rounding=ROUND_HALF_UP),
        'auto_suggestion': suggestion,
        'payment_multiplier': payment_multiplier(ratio)
    }

def recommended_payment(budget: Any, multiplier: Any, upfront_paid: Any = 0) -> Optional[Decimal]:
    """Remaining budget scaled by the payout multiplier, to the cent."""
    budget_number = _number(budget)
    multiplier_number = _number(multiplier)
    if budget_number is None or multiplier_number is None:
        return None
    remaining = budget_number - (_number(upfront_paid) or 0)
    return (remaining * multiplier_number).quantize(CENTS, rounding=ROUND_HALF_UP)

__all__ = [
    'evaluate_kpis', 'kpi_status', 'percentage_achieved',
    'payment_multiplier', 'recommended_payment',
    'KPI_PENDING', 'KPI_MET', 'KPI_EXCEEDED', 'KPI_NOT_MET'
]
