"""
HRMS Multi-Country Payroll - Calculator Value Types

Plain value objects passed between the orchestrator, the record store and
the country calculators. Calculators never see ORM rows.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional


class CountryCode(str, Enum):
    """Closed set of payroll jurisdictions."""
    IND = "IND"
    UAE = "UAE"
    SAU = "SAU"
    OMN = "OMN"
    BHR = "BHR"
    QAT = "QAT"
    EGY = "EGY"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["CountryCode"]:
        """Case-insensitive lookup; None when the code is not supported."""
        if not value:
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


@dataclass(frozen=True)
class CountryInfo:
    """Currency and WPS settings for a payroll country."""
    code: str
    name: str
    currency_code: str
    currency_symbol: str
    currency_decimals: int = 2
    wps_enabled: bool = False
    is_active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "name": self.name,
            "currency": self.currency_code,
            "currency_symbol": self.currency_symbol,
            "currency_decimals": self.currency_decimals,
            "wps_enabled": self.wps_enabled,
        }


@dataclass(frozen=True)
class PeriodInfo:
    """Payroll period as seen by the orchestrator."""
    id: uuid.UUID
    name: str
    start_date: date
    end_date: date
    pay_date: date
    status: str


@dataclass(frozen=True)
class EmployeeProfile:
    """
    Employee attributes consumed by the calculators.

    `allowances` is the fixed monthly allowance total; it feeds
    allowance-inclusive gratuity bases such as the Saudi EOSB.
    """
    id: Optional[uuid.UUID] = None
    code: str = ""
    country_code: str = ""
    joining_date: Optional[date] = None
    nationality: Optional[str] = None
    employee_type: str = "EXPATRIATE"
    air_ticket_eligible: bool = False
    ticket_segment: Optional[str] = None
    estimated_ticket_cost: Optional[Decimal] = None
    basic_salary: Decimal = Decimal("0")
    allowances: Decimal = Decimal("0")
    housing_allowance_eligible: bool = False
    housing_allowance_rate: Optional[Decimal] = None


@dataclass(frozen=True)
class CompensationLine:
    """One pay component of an employee's compensation."""
    component_code: str
    component_name: str
    component_type: str
    amount: Optional[Decimal] = None
    percentage: Optional[Decimal] = None
    is_percentage: bool = False
    calculation_base: Optional[str] = None


@dataclass(frozen=True)
class AttendanceSummary:
    """Attendance totals for a period; defaults to a full 30-day month."""
    present_days: Decimal = Decimal("30")
    absent_days: Decimal = Decimal("0")
    leave_days: Decimal = Decimal("0")
    overtime_hours: Decimal = Decimal("0")
    work_days: int = 30


@dataclass(frozen=True)
class StatutoryComponent:
    """One line of a statutory deduction breakdown."""
    employee: Decimal = Decimal("0")
    employer: Decimal = Decimal("0")
    calculation_base: Decimal = Decimal("0")
    effective_rate: str = ""
    policy_tag: str = ""
    note: Optional[str] = None
    is_pension: bool = False

    @property
    def total(self) -> Decimal:
        return self.employee + self.employer

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "employee": self.employee,
            "employer": self.employer,
            "calculation_base": self.calculation_base,
            "effective_rate": self.effective_rate,
            "policy": self.policy_tag,
        }
        if self.note:
            data["note"] = self.note
        return data


@dataclass(frozen=True)
class StatutoryDeductionResult:
    """
    Full statutory deduction outcome for one employee.

    Inapplicable components stay in the breakdown with zero amounts and an
    explanatory policy tag.
    """
    employee_share: Decimal
    employer_share: Decimal
    total: Decimal
    breakdown: Dict[str, StatutoryComponent] = field(default_factory=dict)

    @property
    def pension_employee(self) -> Decimal:
        return sum((c.employee for c in self.breakdown.values() if c.is_pension), Decimal("0"))

    @property
    def pension_employer(self) -> Decimal:
        return sum((c.employer for c in self.breakdown.values() if c.is_pension), Decimal("0"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "employee": self.employee_share,
            "employer": self.employer_share,
            "total": self.total,
            "breakdown": {name: comp.to_dict() for name, comp in self.breakdown.items()},
        }


@dataclass(frozen=True)
class CalculatorCapabilities:
    """What a country calculator supports and which employee fields it needs."""
    supports_social_security: bool = True
    supports_pension: bool = False
    supports_gratuity: bool = True
    supports_air_ticket: bool = False
    supports_overtime: bool = True
    supports_wps: bool = False
    nationality_required: bool = False
    employee_type_required: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return {
            "supports_social_security": self.supports_social_security,
            "supports_pension": self.supports_pension,
            "supports_gratuity": self.supports_gratuity,
            "supports_air_ticket": self.supports_air_ticket,
            "supports_overtime": self.supports_overtime,
            "supports_wps": self.supports_wps,
            "nationality_required": self.nationality_required,
            "employee_type_required": self.employee_type_required,
        }


class TerminationType(str, Enum):
    """How employment ended; drives end-of-service entitlements."""
    RESIGNATION = "RESIGNATION"
    TERMINATION = "TERMINATION"
    TERMINATION_FOR_CAUSE = "TERMINATION_FOR_CAUSE"
    END_OF_CONTRACT = "END_OF_CONTRACT"
