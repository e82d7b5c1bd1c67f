"""
Built-in rule table used to seed a new RuleSet.

Kept exactly as issued, including ranges written max-min (e.g. "645.67-645.5")
which can never match; ValidationRule.lint_rule reports them.
"""

from typing import Tuple

from stream.schema import InsuranceRule

# (deduction, monthly amount, carrier, coverage, plan); level is "1" throughout
_TABLE = [
    # Medical code 2400
    ("2400", "65-65.5", "AETN", "1", "HLTH"),
    ("2400", "299-299.5", "AETN", "10", "HLTH"),
    ("2400", "494-494.5", "AETN", "2", "HLTH"),
    ("2400", "645.67-645.5", "AETN", "3", "HLTH"),
    ("2400", "992.33-992.5", "AETN", "4", "HLTH"),
    ("2400", "125.67-125.8", "AETN", "90", "HLTH"),
    ("2400", "368.33-368.5", "AETN", "94", "HLTH"),
    ("2400", "563.33-563.5", "AETN", "91", "HLTH"),
    ("2400", "715-715.5", "AETN", "92", "HLTH"),
    ("2400", "1061.67-1061.8", "AETN", "93", "HLTH"),
    # Medical code 2401
    ("2401", "0", "AETN", "1", "H-CD"),
    ("2401", "199.33-199.5", "AETN", "10", "H-CD"),
    ("2401", "264.33-264.5", "AETN", "2", "H-CD"),
    ("2401", "351-351.1", "AETN", "3", "H-CD"),
    ("2401", "567.67-567.8", "AETN", "4", "H-CD"),
    ("2401", "60.67-60.8", "AETN", "90", "H-CD"),
    ("2401", "260-260.1", "AETN", "94", "H-CD"),
    ("2401", "325-325.1", "AETN", "91", "H-CD"),
    ("2401", "411.67-411.8", "AETN", "92", "H-CD"),
    ("2401", "628.33-628.5", "AETN", "93", "H-CD"),
    # Dental code 2410
    ("2410", "33.5-33.59", "AMER", "5", "DENT"),
    ("2410", "72.5-72.59", "AMER", "6", "DENT"),
    ("2410", "112.6-112.69", "AMER", "7", "DENT"),
    # Vision code 2411
    ("2411", "6.7-6.79", "STAN", "70", "VISS"),
    ("2411", "13.1-13.19", "STAN", "71", "VISS"),
    ("2411", "13.4-13.49", "STAN", "72", "VISS"),
    ("2411", "20-20.05", "STAN", "73", "VISS"),
]

DEFAULT_RULES: Tuple[InsuranceRule, ...] = tuple(
    InsuranceRule(deduction=deduction, emp_amount=amount, carrier=carrier, coverage=coverage, level="1", plan=plan)
    for deduction, amount, carrier, coverage, plan in _TABLE
)
