"""Multi-country payroll tables

Revision ID: 20261019_0900_multi_country_payroll
Revises:
Create Date: 2026-10-19 09:00:00.000000

This migration creates the multi-country payroll schema:
- hrms_countries, hrms_payroll_country_policies: country master data and
  statutory policy table
- hrms_employees, hrms_employee_compensation, hrms_attendance
- hrms_payroll_periods, hrms_payroll_runs, hrms_payroll_details
- hrms_gratuity_accruals, hrms_air_ticket_accruals,
  hrms_statutory_deductions
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = '20261019_0900_multi_country_payroll'
down_revision = None
branch_labels = None
depends_on = None


ENUMS = {
    'employeestatus': ('ACTIVE', 'INACTIVE', 'TERMINATED', 'RESIGNED'),
    'employeetype': ('LOCAL', 'EXPATRIATE'),
    'ticketsegment': ('ECONOMY', 'BUSINESS', 'FIRST'),
    'componenttype': ('EARNING', 'ALLOWANCE', 'DEDUCTION'),
    'compensationstatus': ('ACTIVE', 'INACTIVE'),
    'attendancestatus': ('PRESENT', 'ABSENT', 'LEAVE', 'HOLIDAY'),
    'periodstatus': ('DRAFT', 'APPROVED', 'LOCKED', 'PAID', 'CLOSED'),
    'runstatus': ('IN_PROGRESS', 'COMPLETED', 'COMPLETED_WITH_ERRORS'),
    'detailstatus': ('CALCULATED', 'APPROVED', 'PAID', 'CANCELLED'),
    'airticketaccrualstatus': ('ACCRUED', 'PARTIALLY_UTILIZED', 'FULLY_UTILIZED', 'EXPIRED'),
    'remittancestatus': ('PENDING', 'REMITTED'),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _uuid_pk() -> sa.Column:
    return sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()'))


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _audit() -> list:
    return [
        sa.Column('created_by_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('updated_by_id', postgresql.UUID(as_uuid=True), nullable=True),
    ]


def _employee_fk(nullable: bool = False) -> sa.Column:
    return sa.Column(
        'employee_id', postgresql.UUID(as_uuid=True),
        sa.ForeignKey('hrms_employees.id', ondelete='CASCADE'), nullable=nullable,
    )


def upgrade() -> None:
    """Create multi-country payroll tables."""
    connection = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(connection, checkfirst=True)

    # Country master data
    op.create_table(
        'hrms_countries',
        _uuid_pk(),
        sa.Column('country_code', sa.String(3), unique=True, nullable=False),
        sa.Column('country_name', sa.String(100), nullable=False),
        sa.Column('currency_code', sa.String(3), nullable=False),
        sa.Column('currency_symbol', sa.String(10), nullable=False),
        sa.Column('currency_decimals', sa.Integer, server_default='2', nullable=False),
        sa.Column('is_active', sa.Boolean, server_default='true', nullable=False),
        sa.Column('wps_enabled', sa.Boolean, server_default='false', nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'hrms_payroll_country_policies',
        _uuid_pk(),
        sa.Column('country_code', sa.String(3), nullable=False, index=True),
        sa.Column('policy_category', sa.String(50), nullable=False),
        sa.Column('policy_name', sa.String(100), nullable=False),
        sa.Column('policy_type', sa.String(30), nullable=False),
        sa.Column('employee_rate', sa.Numeric(7, 4), nullable=True),
        sa.Column('employer_rate', sa.Numeric(7, 4), nullable=True),
        sa.Column('fixed_amount', sa.Numeric(15, 2), nullable=True),
        sa.Column('cap_amount', sa.Numeric(15, 2), nullable=True),
        sa.Column('min_threshold', sa.Numeric(15, 2), nullable=True),
        sa.Column('max_threshold', sa.Numeric(15, 2), nullable=True),
        sa.Column('calculation_base', sa.String(50), nullable=True),
        sa.Column('formula_text', sa.Text, nullable=True),
        sa.Column('conditions', sa.String(1000), nullable=True, comment="e.g. 'NATIONALITY=SAUDI AND SERVICE_YEARS>=5'"),
        sa.Column('is_mandatory', sa.Boolean, server_default='true', nullable=False),
        sa.Column('is_active', sa.Boolean, server_default='true', nullable=False),
        sa.Column('effective_from', sa.Date, server_default=sa.func.current_date(), nullable=False),
        sa.Column('effective_to', sa.Date, nullable=True),
        *_timestamps(),
    )
    op.create_index(
        'ix_policy_country_category_name', 'hrms_payroll_country_policies',
        ['country_code', 'policy_category', 'policy_name'],
    )

    # Employees
    op.create_table(
        'hrms_employees',
        _uuid_pk(),
        sa.Column('employee_code', sa.String(50), unique=True, nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('payroll_country', sa.String(3), nullable=False, index=True),
        sa.Column('status', _enum('employeestatus'), server_default='ACTIVE', nullable=False),
        sa.Column('employee_type', _enum('employeetype'), server_default='EXPATRIATE', nullable=False),
        sa.Column('nationality', sa.String(50), nullable=True),
        sa.Column('joining_date', sa.Date, nullable=True),
        sa.Column('basic_salary', sa.Numeric(15, 2), server_default='0', nullable=False),
        sa.Column('air_ticket_eligible', sa.Boolean, server_default='false', nullable=False),
        sa.Column('ticket_segment', _enum('ticketsegment'), nullable=True),
        sa.Column('estimated_ticket_cost', sa.Numeric(15, 2), nullable=True),
        sa.Column('wps_enabled', sa.Boolean, server_default='false', nullable=False),
        sa.Column('primary_bank_code', sa.String(20), nullable=True),
        *_timestamps(),
        *_audit(),
    )

    op.create_table(
        'hrms_employee_compensation',
        _uuid_pk(),
        _employee_fk(),
        sa.Column('component_code', sa.String(30), nullable=False),
        sa.Column('component_name', sa.String(100), nullable=False),
        sa.Column('component_type', _enum('componenttype'), nullable=False),
        sa.Column('amount', sa.Numeric(15, 2), nullable=True),
        sa.Column('percentage', sa.Numeric(7, 4), nullable=True),
        sa.Column('is_percentage', sa.Boolean, server_default='false', nullable=False),
        sa.Column('calculation_base', sa.String(30), nullable=True),
        sa.Column('status', _enum('compensationstatus'), server_default='ACTIVE', nullable=False),
        sa.Column('effective_date', sa.Date, nullable=False),
        sa.Column('end_date', sa.Date, nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_hrms_employee_compensation_employee_id', 'hrms_employee_compensation', ['employee_id'])

    op.create_table(
        'hrms_attendance',
        _uuid_pk(),
        _employee_fk(),
        sa.Column('attendance_date', sa.Date, nullable=False),
        sa.Column('status', _enum('attendancestatus'), nullable=False),
        sa.Column('overtime_hours', sa.Numeric(6, 2), server_default='0', nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('employee_id', 'attendance_date', name='uq_attendance_employee_date'),
    )

    # Periods and runs
    op.create_table(
        'hrms_payroll_periods',
        _uuid_pk(),
        sa.Column('period_name', sa.String(100), nullable=False),
        sa.Column('start_date', sa.Date, nullable=False),
        sa.Column('end_date', sa.Date, nullable=False),
        sa.Column('pay_date', sa.Date, nullable=False),
        sa.Column('status', _enum('periodstatus'), server_default='DRAFT', nullable=False),
        *_timestamps(),
        *_audit(),
    )

    op.create_table(
        'hrms_payroll_runs',
        _uuid_pk(),
        sa.Column('period_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('hrms_payroll_periods.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('run_name', sa.String(200), nullable=False),
        sa.Column('run_type', sa.String(20), server_default='FULL', nullable=False),
        sa.Column('status', _enum('runstatus'), server_default='IN_PROGRESS', nullable=False),
        sa.Column('country_code', sa.String(3), nullable=False),
        sa.Column('currency_code', sa.String(3), nullable=False),
        sa.Column('total_employees', sa.Integer, server_default='0', nullable=False),
        sa.Column('total_employees_processed', sa.Integer, server_default='0', nullable=False),
        sa.Column('total_employees_failed', sa.Integer, server_default='0', nullable=False),
        sa.Column('total_gross_salary', sa.Numeric(18, 3), server_default='0', nullable=False),
        sa.Column('total_net_salary', sa.Numeric(18, 3), server_default='0', nullable=False),
        sa.Column('total_statutory_deductions', sa.Numeric(18, 3), server_default='0', nullable=False),
        sa.Column('total_employer_contributions', sa.Numeric(18, 3), server_default='0', nullable=False),
        sa.Column('total_gratuity_accrual', sa.Numeric(18, 3), server_default='0', nullable=False),
        sa.Column('total_air_ticket_accrual', sa.Numeric(18, 3), server_default='0', nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        *_audit(),
    )

    op.create_table(
        'hrms_payroll_details',
        _uuid_pk(),
        sa.Column('period_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('hrms_payroll_periods.id', ondelete='CASCADE'), nullable=False),
        _employee_fk(),
        sa.Column('run_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('hrms_payroll_runs.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('payroll_country', sa.String(3), nullable=False),

        # Earnings
        sa.Column('basic_salary', sa.Numeric(15, 3), nullable=False),
        sa.Column('gross_salary', sa.Numeric(15, 3), nullable=False),
        sa.Column('total_earnings', sa.Numeric(15, 3), nullable=False),
        sa.Column('overtime_hours', sa.Numeric(6, 2), server_default='0', nullable=False),
        sa.Column('overtime_amount', sa.Numeric(15, 3), server_default='0', nullable=False),
        sa.Column('overtime_rate', sa.Numeric(5, 2), nullable=False),

        # Deductions
        sa.Column('total_deductions', sa.Numeric(15, 3), nullable=False),
        sa.Column('total_taxes', sa.Numeric(15, 3), server_default='0', nullable=False),
        sa.Column('net_salary', sa.Numeric(15, 3), nullable=False),

        # Attendance
        sa.Column('work_days', sa.Integer, server_default='30', nullable=False),
        sa.Column('present_days', sa.Numeric(5, 2), server_default='30', nullable=False),
        sa.Column('absent_days', sa.Numeric(5, 2), server_default='0', nullable=False),
        sa.Column('leave_days', sa.Numeric(5, 2), server_default='0', nullable=False),

        # Statutory and accruals
        sa.Column('social_security_employee', sa.Numeric(15, 3), server_default='0', nullable=False),
        sa.Column('social_security_employer', sa.Numeric(15, 3), server_default='0', nullable=False),
        sa.Column('pension_employee', sa.Numeric(15, 3), server_default='0', nullable=False),
        sa.Column('pension_employer', sa.Numeric(15, 3), server_default='0', nullable=False),
        sa.Column('gratuity_accrual', sa.Numeric(15, 3), server_default='0', nullable=False),
        sa.Column('air_ticket_accrual', sa.Numeric(15, 3), server_default='0', nullable=False),

        sa.Column('status', _enum('detailstatus'), server_default='CALCULATED', nullable=False),
        sa.Column('created_by_id', postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('run_id', 'employee_id', name='uq_payroll_detail_run_employee'),
    )
    op.create_index('ix_payroll_detail_period_employee', 'hrms_payroll_details', ['period_id', 'employee_id'])

    # Accrual and statutory records
    op.create_table(
        'hrms_gratuity_accruals',
        _uuid_pk(),
        _employee_fk(),
        sa.Column('accrual_year', sa.Integer, nullable=False),
        sa.Column('accrual_month', sa.Integer, nullable=False),
        sa.Column('service_years', sa.Integer, nullable=False),
        sa.Column('service_months', sa.Integer, nullable=False, comment='Months past the last full service year (0-11)'),
        sa.Column('monthly_accrual_amount', sa.Numeric(15, 3), nullable=False),
        sa.Column('total_accrued_amount', sa.Numeric(15, 3), nullable=False),
        sa.Column('calculation_base_salary', sa.Numeric(15, 3), nullable=False),
        sa.Column('gratuity_rate_days', sa.Numeric(5, 2), nullable=False),
        sa.Column('country_code', sa.String(3), nullable=False),
        sa.Column('payment_status', sa.String(20), server_default='ACCRUED', nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('employee_id', 'accrual_year', 'accrual_month', name='uq_gratuity_period'),
    )

    op.create_table(
        'hrms_air_ticket_accruals',
        _uuid_pk(),
        _employee_fk(),
        sa.Column('accrual_year', sa.Integer, nullable=False),
        sa.Column('accrual_month', sa.Integer, nullable=False),
        sa.Column('monthly_accrual_amount', sa.Numeric(15, 3), nullable=False),
        sa.Column('total_accrued_amount', sa.Numeric(15, 3), nullable=False),
        sa.Column('ticket_segment', sa.String(20), nullable=True),
        sa.Column('estimated_ticket_cost', sa.Numeric(15, 3), nullable=True),
        sa.Column('utilized_amount', sa.Numeric(15, 3), server_default='0', nullable=False),
        sa.Column('status', _enum('airticketaccrualstatus'), server_default='ACCRUED', nullable=False),
        sa.Column('fifo_sequence', sa.Integer, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('employee_id', 'accrual_year', 'accrual_month', name='uq_air_ticket_period'),
    )

    op.create_table(
        'hrms_statutory_deductions',
        _uuid_pk(),
        _employee_fk(),
        sa.Column('payroll_period_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('hrms_payroll_periods.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('country_code', sa.String(3), nullable=False),
        sa.Column('deduction_type', sa.String(50), nullable=False, comment='Breakdown key, e.g. pf, esi, gosi'),
        sa.Column('deduction_name', sa.String(100), nullable=False, comment='Policy tag, e.g. GOSI_SAUDI_NATIONAL'),
        sa.Column('calculation_base', sa.Numeric(15, 3), nullable=False),
        sa.Column('gross_salary', sa.Numeric(15, 3), nullable=False),
        sa.Column('effective_rate', sa.String(50), nullable=True),
        sa.Column('employee_amount', sa.Numeric(15, 3), server_default='0', nullable=False),
        sa.Column('employer_amount', sa.Numeric(15, 3), server_default='0', nullable=False),
        sa.Column('total_amount', sa.Numeric(15, 3), nullable=False),
        sa.Column('payment_status', _enum('remittancestatus'), server_default='PENDING', nullable=False),
        sa.Column('payment_date', sa.Date, nullable=True),
        *_timestamps(),
    )


def downgrade() -> None:
    """Drop multi-country payroll tables."""
    for table in (
        'hrms_statutory_deductions',
        'hrms_air_ticket_accruals',
        'hrms_gratuity_accruals',
        'hrms_payroll_details',
        'hrms_payroll_runs',
        'hrms_payroll_periods',
        'hrms_attendance',
        'hrms_employee_compensation',
        'hrms_employees',
        'hrms_payroll_country_policies',
        'hrms_countries',
    ):
        op.drop_table(table)

    connection = op.get_bind()
    for name in ENUMS:
        postgresql.ENUM(name=name).drop(connection, checkfirst=True)
