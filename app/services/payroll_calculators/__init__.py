"""
HRMS Multi-Country Payroll - Payroll Calculators Package

Country payroll calculators for the seven supported jurisdictions.

Modules:
- contract: PayrollCalculator protocol every country implements
- helpers: shared percentage, cap, proration, gratuity and overtime math
- policies: two-tier country policy resolution and policy conditions
- india, uae, saudi, oman, bahrain, qatar, egypt: country calculators
- factory: country code to calculator dispatch and diagnostics
"""

from app.services.payroll_calculators.contract import PayrollCalculator
from app.services.payroll_calculators.factory import (
    PayrollCalculatorFactory,
    SUPPORTED_COUNTRIES,
    default_nationality,
)
from app.services.payroll_calculators.policies import (
    DEFAULT_POLICIES,
    PolicyBook,
    PolicyCondition,
    PolicyRule,
    PolicySource,
)
from app.services.payroll_calculators.types import (
    AttendanceSummary,
    CalculatorCapabilities,
    CompensationLine,
    CountryCode,
    CountryInfo,
    EmployeeProfile,
    PeriodInfo,
    StatutoryComponent,
    StatutoryDeductionResult,
    TerminationType,
)
from app.services.payroll_calculators.india import IndiaPayrollCalculator
from app.services.payroll_calculators.uae import UAEPayrollCalculator
from app.services.payroll_calculators.saudi import SaudiPayrollCalculator
from app.services.payroll_calculators.oman import OmanPayrollCalculator
from app.services.payroll_calculators.bahrain import BahrainPayrollCalculator
from app.services.payroll_calculators.qatar import QatarPayrollCalculator
from app.services.payroll_calculators.egypt import EgyptPayrollCalculator


__all__ = [
    # Contract and factory
    "PayrollCalculator",
    "PayrollCalculatorFactory",
    "SUPPORTED_COUNTRIES",
    "default_nationality",
    # Policies
    "DEFAULT_POLICIES",
    "PolicyBook",
    "PolicyCondition",
    "PolicyRule",
    "PolicySource",
    # Value types
    "AttendanceSummary",
    "CalculatorCapabilities",
    "CompensationLine",
    "CountryCode",
    "CountryInfo",
    "EmployeeProfile",
    "PeriodInfo",
    "StatutoryComponent",
    "StatutoryDeductionResult",
    "TerminationType",
    # Country calculators
    "IndiaPayrollCalculator",
    "UAEPayrollCalculator",
    "SaudiPayrollCalculator",
    "OmanPayrollCalculator",
    "BahrainPayrollCalculator",
    "QatarPayrollCalculator",
    "EgyptPayrollCalculator",
]
