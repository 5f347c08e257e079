"""
HRMS Multi-Country Payroll - Country Policy Resolution

Payroll rates, caps and thresholds are resolved in two tiers:

1. The policy table (HRMS_PAYROLL_COUNTRY_POLICIES), loaded once per
   calculator through a PolicySource.
2. Built-in defaults per country, matching the deployment seed data.

A policy source that is missing or fails is not fatal: a warning is logged
and the built-in defaults are used.

Policy conditions ("NATIONALITY=SAUDI AND SERVICE_YEARS>=5") are parsed
into PolicyCondition predicates. A condition that cannot be parsed or
evaluated is treated as met and logged at WARNING.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Protocol, Tuple

from app.services.payroll_calculators.types import EmployeeProfile

logger = logging.getLogger(__name__)


# ===========================================
# CONDITIONS
# ===========================================

class PolicyConditionError(ValueError):
    """Raised when a policy condition cannot be parsed or evaluated."""


# Longest operators first so ">=" is not read as ">"
CONDITION_OPERATORS = (">=", "<=", "!=", "=", ">", "<")
CONDITION_FIELDS = ("NATIONALITY", "EMPLOYEE_TYPE", "SERVICE_YEARS", "ELIGIBLE")


@dataclass(frozen=True)
class PolicyCondition:
    """Single predicate: field operator value."""
    field: str
    operator: str
    value: str

    @classmethod
    def parse(cls, text: str) -> "PolicyCondition":
        clause = text.strip()
        for operator in CONDITION_OPERATORS:
            if operator in clause:
                field, _, value = clause.partition(operator)
                field, value = field.strip().upper(), value.strip().upper()
                if field not in CONDITION_FIELDS or not value:
                    raise PolicyConditionError(f"Unsupported policy condition: {text!r}")
                return cls(field=field, operator=operator, value=value)
        raise PolicyConditionError(f"No operator in policy condition: {text!r}")

    def evaluate(self, employee: EmployeeProfile, service_months: int) -> bool:
        if self.field == "SERVICE_YEARS":
            try:
                expected = Decimal(self.value)
            except ArithmeticError as exc:
                raise PolicyConditionError(f"Non-numeric SERVICE_YEARS value: {self.value!r}") from exc
            return _compare(Decimal(service_months) / Decimal(12), self.operator, expected)

        if self.field == "NATIONALITY":
            actual = (employee.nationality or "").upper()
        elif self.field == "EMPLOYEE_TYPE":
            actual = (employee.employee_type or "").upper()
        else:
            actual = "YES" if employee.air_ticket_eligible else "NO"

        if self.operator == "=":
            return actual == self.value
        if self.operator == "!=":
            return actual != self.value
        raise PolicyConditionError(f"Operator {self.operator} not valid for {self.field}")


def _compare(actual: Decimal, operator: str, expected: Decimal) -> bool:
    if operator == ">=":
        return actual >= expected
    if operator == "<=":
        return actual <= expected
    if operator == ">":
        return actual > expected
    if operator == "<":
        return actual < expected
    if operator == "=":
        return actual == expected
    return actual != expected


def parse_conditions(text: Optional[str]) -> List[PolicyCondition]:
    """Parse "A AND B" into predicates. Empty text means no conditions."""
    if not text or not text.strip():
        return []
    return [PolicyCondition.parse(part) for part in text.split(" AND ")]


# ===========================================
# POLICY RULES
# ===========================================

@dataclass(frozen=True)
class PolicyRule:
    """One country payroll policy."""
    category: str
    name: str
    policy_type: str = "PERCENTAGE"
    employee_rate: Optional[Decimal] = None
    employer_rate: Optional[Decimal] = None
    fixed_amount: Optional[Decimal] = None
    cap_amount: Optional[Decimal] = None
    min_threshold: Optional[Decimal] = None
    max_threshold: Optional[Decimal] = None
    calculation_base: Optional[str] = None
    conditions: Optional[str] = None
    is_mandatory: bool = True

    @classmethod
    def from_row(cls, row: Any) -> "PolicyRule":
        """Build from a CountryPayrollPolicy row or any object with the same attributes."""
        return cls(
            category=row.policy_category,
            name=row.policy_name,
            policy_type=row.policy_type,
            employee_rate=row.employee_rate,
            employer_rate=row.employer_rate,
            fixed_amount=row.fixed_amount,
            cap_amount=row.cap_amount,
            min_threshold=row.min_threshold,
            max_threshold=row.max_threshold,
            calculation_base=row.calculation_base,
            conditions=row.conditions,
            is_mandatory=bool(row.is_mandatory),
        )

    def applies_to(self, employee: EmployeeProfile, service_months: int = 0) -> bool:
        """Evaluate all conditions; unparseable or failing evaluation counts as met."""
        try:
            return all(c.evaluate(employee, service_months) for c in parse_conditions(self.conditions))
        except PolicyConditionError as exc:
            logger.warning(
                f"Could not evaluate conditions {self.conditions!r} on "
                f"{self.category}/{self.name}, treating as met: {exc}"
            )
            return True


class PolicySource(Protocol):
    """Anything that can supply tier-1 policies for a country."""

    async def load_country_policies(self, country_code: str) -> List[PolicyRule]:
        ...


def _rule(category: str, name: str, policy_type: str = "PERCENTAGE", **values: Any) -> PolicyRule:
    decimals = {
        key: Decimal(str(value))
        for key, value in values.items()
        if key in ("employee_rate", "employer_rate", "fixed_amount", "cap_amount", "min_threshold", "max_threshold")
    }
    other = {key: value for key, value in values.items() if key not in decimals}
    return PolicyRule(category=category, name=name, policy_type=policy_type, **decimals, **other)


# Built-in defaults, identical to the deployment seed data
DEFAULT_POLICIES: Dict[str, List[PolicyRule]] = {
    "IND": [
        _rule("SOCIAL_SECURITY", "PF_EMPLOYEE", employee_rate=12, cap_amount=15000, calculation_base="BASIC"),
        _rule("SOCIAL_SECURITY", "PF_EMPLOYER", employer_rate=12, cap_amount=15000, calculation_base="BASIC"),
        _rule("SOCIAL_SECURITY", "ESI_EMPLOYEE", employee_rate=0.75, max_threshold=21000, calculation_base="GROSS"),
        _rule("SOCIAL_SECURITY", "ESI_EMPLOYER", employer_rate=3.25, max_threshold=21000, calculation_base="GROSS"),
        _rule("SOCIAL_SECURITY", "EPS_EMPLOYER", employer_rate=8.33, cap_amount=15000, calculation_base="BASIC"),
        _rule("SOCIAL_SECURITY", "EDLI_EMPLOYER", employer_rate=0.5, cap_amount=15000, calculation_base="BASIC"),
        _rule("GRATUITY", "GRATUITY_ACCRUAL", "DAYS", employer_rate=15, calculation_base="BASIC",
              conditions="SERVICE_YEARS>=5"),
    ],
    "UAE": [
        _rule("SOCIAL_SECURITY", "GPSSA_EMPLOYEE", employee_rate=5, cap_amount=50000, calculation_base="GROSS",
              conditions="NATIONALITY=EMIRATI"),
        _rule("SOCIAL_SECURITY", "GPSSA_EMPLOYER", employer_rate=12.5, cap_amount=50000, calculation_base="GROSS",
              conditions="NATIONALITY=EMIRATI"),
        _rule("GRATUITY", "EOSB_FIRST_5_YEARS", "DAYS", employer_rate=21, calculation_base="BASIC",
              conditions="SERVICE_YEARS<=5"),
        _rule("GRATUITY", "EOSB_AFTER_5_YEARS", "DAYS", employer_rate=30, calculation_base="BASIC",
              conditions="SERVICE_YEARS>5"),
        _rule("AIR_TICKET", "BIENNIAL_ALLOWANCE", "ELIGIBILITY", conditions="ELIGIBLE=YES"),
    ],
    "SAU": [
        _rule("SOCIAL_SECURITY", "GOSI_EMPLOYEE_SAUDI", employee_rate=10, cap_amount=45000, calculation_base="GROSS",
              conditions="NATIONALITY=SAUDI"),
        _rule("SOCIAL_SECURITY", "GOSI_EMPLOYER_SAUDI", employer_rate=12, cap_amount=45000, calculation_base="GROSS",
              conditions="NATIONALITY=SAUDI"),
        _rule("SOCIAL_SECURITY", "GOSI_EMPLOYEE_EXPAT", employee_rate=2, cap_amount=45000, calculation_base="GROSS",
              conditions="NATIONALITY!=SAUDI"),
        _rule("SOCIAL_SECURITY", "GOSI_EMPLOYER_EXPAT", employer_rate=2, cap_amount=45000, calculation_base="GROSS",
              conditions="NATIONALITY!=SAUDI"),
        _rule("GRATUITY", "EOSB_FIRST_5_YEARS", "MONTHS", employer_rate=0.5, calculation_base="BASIC_ALLOWANCES",
              conditions="SERVICE_YEARS<=5"),
        _rule("GRATUITY", "EOSB_AFTER_5_YEARS", "MONTHS", employer_rate=1.0, calculation_base="BASIC_ALLOWANCES",
              conditions="SERVICE_YEARS>5"),
        _rule("AIR_TICKET", "BIENNIAL_ALLOWANCE", "ELIGIBILITY", conditions="ELIGIBLE=YES"),
    ],
    "OMN": [
        _rule("SOCIAL_SECURITY", "PASI_EMPLOYEE", employee_rate=7, cap_amount=6000, calculation_base="GROSS",
              conditions="NATIONALITY=OMANI"),
        _rule("SOCIAL_SECURITY", "PASI_EMPLOYER", employer_rate=10.5, cap_amount=6000, calculation_base="GROSS",
              conditions="NATIONALITY=OMANI"),
        _rule("GRATUITY", "EOSB_ACCRUAL", "MONTHS", employer_rate=1.0, calculation_base="BASIC"),
        _rule("AIR_TICKET", "BIENNIAL_ALLOWANCE", "ELIGIBILITY", conditions="ELIGIBLE=YES"),
    ],
    "BHR": [
        _rule("SOCIAL_SECURITY", "GOSI_EMPLOYEE", employee_rate=6, cap_amount=5000, calculation_base="GROSS",
              conditions="NATIONALITY=BAHRAINI"),
        _rule("SOCIAL_SECURITY", "GOSI_EMPLOYER", employer_rate=12, cap_amount=5000, calculation_base="GROSS",
              conditions="NATIONALITY=BAHRAINI"),
        _rule("GRATUITY", "EOSB_ACCRUAL", "MONTHS", employer_rate=1.0, calculation_base="GROSS"),
        _rule("AIR_TICKET", "BIENNIAL_ALLOWANCE", "ELIGIBILITY", conditions="ELIGIBLE=YES"),
    ],
    "QAT": [
        _rule("SOCIAL_SECURITY", "GRSIA_EMPLOYEE", employee_rate=7, calculation_base="GROSS",
              conditions="NATIONALITY=QATARI"),
        _rule("SOCIAL_SECURITY", "GRSIA_EMPLOYER", employer_rate=14, calculation_base="GROSS",
              conditions="NATIONALITY=QATARI"),
        _rule("GRATUITY", "EOSB_ACCRUAL", "WEEKS", employer_rate=3.0, calculation_base="BASIC",
              conditions="SERVICE_YEARS>=1"),
        _rule("AIR_TICKET", "BIENNIAL_ALLOWANCE", "ELIGIBILITY", conditions="ELIGIBLE=YES"),
    ],
    "EGY": [
        _rule("SOCIAL_SECURITY", "SOCIAL_INSURANCE_EMPLOYEE", employee_rate=14, calculation_base="GROSS"),
        _rule("SOCIAL_SECURITY", "SOCIAL_INSURANCE_EMPLOYER", employer_rate=26, calculation_base="GROSS"),
        _rule("GRATUITY", "EOSB_ACCRUAL", "MONTHS", employer_rate=1.0, calculation_base="GROSS"),
        _rule("AIR_TICKET", "BIENNIAL_ALLOWANCE", "ELIGIBILITY", conditions="ELIGIBLE=YES"),
    ],
}


# ===========================================
# POLICY BOOK
# ===========================================

class PolicyBook:
    """
    Two-tier policy lookup for one country.

    Lookups check the loaded policy table first, then the built-in
    defaults, key by key.
    """

    def __init__(self, country_code: str, source: Optional[PolicySource] = None):
        self.country_code = country_code
        self.source = source
        self._loaded: Dict[Tuple[str, str], PolicyRule] = {}
        self._defaults: Dict[Tuple[str, str], PolicyRule] = {
            (rule.category, rule.name): rule for rule in DEFAULT_POLICIES.get(country_code, [])
        }
        self.is_loaded = False

    async def load(self) -> None:
        """Load tier-1 policies once. Source failures fall back to defaults."""
        if self.is_loaded:
            return
        self.is_loaded = True
        if self.source is None:
            return
        try:
            rules = await self.source.load_country_policies(self.country_code)
        except Exception as exc:
            logger.warning(
                f"Could not load policies for {self.country_code}, using built-in defaults: {exc}"
            )
            return
        self._loaded = {(rule.category, rule.name): rule for rule in rules or []}
        logger.debug(f"Loaded {len(self._loaded)} {self.country_code} policies from policy table")

    def get(self, category: str, name: str) -> Optional[PolicyRule]:
        key = (category, name)
        return self._loaded.get(key) or self._defaults.get(key)

    def source_of(self, category: str, name: str) -> Optional[str]:
        """'table', 'default' or None; which tier answers a lookup."""
        key = (category, name)
        if key in self._loaded:
            return "table"
        if key in self._defaults:
            return "default"
        return None

    def by_category(self, category: str) -> List[PolicyRule]:
        merged = dict(self._defaults)
        merged.update(self._loaded)
        return [rule for (cat, _), rule in sorted(merged.items()) if cat == category]

    def value(self, category: str, name: str, attribute: str, fallback: Any = None) -> Any:
        """Single attribute of a policy, or `fallback` when the policy or value is absent."""
        rule = self.get(category, name)
        if rule is None:
            return fallback
        result = getattr(rule, attribute)
        return fallback if result is None else result

    def allows_air_ticket(self, employee: EmployeeProfile) -> bool:
        """Employee flag and the AIR_TICKET/BIENNIAL_ALLOWANCE policy must both allow it."""
        if not employee.air_ticket_eligible:
            return False
        rule = self.get("AIR_TICKET", "BIENNIAL_ALLOWANCE")
        return rule is not None and rule.applies_to(employee)
