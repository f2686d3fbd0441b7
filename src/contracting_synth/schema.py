"""Table schema definitions and generation order for synthetic data.

The registry is declarative: each table lists its primary key, foreign keys
and per-column type, domain, numeric range and distribution hint. Generators
draw their category lists from the enums below, and the post-processor and
validator read the same declarations, so changing a domain here changes the
generated output without touching code.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

ID_PATTERN = re.compile(r"^(?P<prefix>[A-Z]+)_(?P<number>\d+)$")
ID_WIDTH = 6


class ColumnType(str, Enum):
    """Logical column types."""

    IDENTIFIER = "identifier"
    CATEGORICAL = "categorical"
    NUMERICAL = "numerical"
    DATETIME = "datetime"
    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    URL = "url"


class Distribution(str, Enum):
    """Named distribution hints for numeric columns."""

    NORMAL = "normal"
    LOG_NORMAL = "log-normal"
    BETA = "beta"
    EXPONENTIAL = "exponential"
    GAMMA = "gamma"
    POISSON = "poisson"
    UNIFORM = "uniform"


# Categorical domains


class Industry(str, Enum):
    TECHNOLOGY = "Technology"
    HEALTHCARE = "Healthcare"
    FINANCIAL_SERVICES = "Financial Services"
    ECOMMERCE = "E-commerce"
    MANUFACTURING = "Manufacturing"
    EDUCATION = "Education"
    GOVERNMENT = "Government"
    NON_PROFIT = "Non-profit"
    REAL_ESTATE = "Real Estate"
    MEDIA = "Media & Entertainment"


class CompanySize(str, Enum):
    STARTUP = "Startup"
    SMB = "SMB"
    MID_MARKET = "Mid-market"
    ENTERPRISE = "Enterprise"


class Country(str, Enum):
    USA = "USA"
    CANADA = "Canada"
    UK = "UK"
    GERMANY = "Germany"
    AUSTRALIA = "Australia"
    FRANCE = "France"
    NETHERLANDS = "Netherlands"


class AcquisitionChannel(str, Enum):
    REFERRAL = "Referral"
    WEBSITE = "Website"
    LINKEDIN = "LinkedIn"
    CONFERENCE = "Conference"
    COLD_OUTREACH = "Cold Outreach"
    PARTNER = "Partner"


class Role(str, Enum):
    FULL_STACK = "Full Stack Developer"
    FRONTEND = "Frontend Developer"
    BACKEND = "Backend Developer"
    DEVOPS = "DevOps Engineer"
    DATA_SCIENTIST = "Data Scientist"
    DESIGNER = "UI/UX Designer"
    PROJECT_MANAGER = "Project Manager"
    QA = "QA Engineer"
    SOLUTION_ARCHITECT = "Solution Architect"
    TECHNICAL_LEAD = "Technical Lead"


class Seniority(str, Enum):
    JUNIOR = "Junior"
    MID_LEVEL = "Mid-level"
    SENIOR = "Senior"
    LEAD = "Lead"
    PRINCIPAL = "Principal"


class ProjectType(str, Enum):
    WEB_APPLICATION = "Web Application"
    MOBILE_APP = "Mobile App"
    API_DEVELOPMENT = "API Development"
    DATA_ANALYTICS = "Data Analytics Platform"
    ECOMMERCE_SITE = "E-commerce Site"
    CRM_SYSTEM = "CRM System"
    DEVOPS_SETUP = "DevOps Setup"
    AI_ML = "AI/ML Solution"
    CLOUD_MIGRATION = "Cloud Migration"
    SECURITY_AUDIT = "Security Audit"


class TechStack(str, Enum):
    REACT_NODE = "React/Node.js/PostgreSQL"
    PYTHON_DJANGO = "Python/Django/MySQL"
    JAVA_SPRING = "Java/Spring/Oracle"
    PHP_LARAVEL = "PHP/Laravel/MariaDB"
    RUBY_RAILS = "Ruby/Rails/Redis"
    DOTNET = ".NET/C#/SQL Server"
    VUE_EXPRESS = "Vue.js/Express/MongoDB"
    ANGULAR_NEST = "Angular/NestJS/GraphQL"


class ProjectStatus(str, Enum):
    DISCOVERY = "Discovery"
    PLANNING = "Planning"
    DEVELOPMENT = "Development"
    TESTING = "Testing"
    DEPLOYMENT = "Deployment"
    COMPLETED = "Completed"
    ON_HOLD = "On Hold"
    CANCELLED = "Cancelled"


class Priority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class AssignmentRole(str, Enum):
    LEAD = "Lead"
    DEVELOPER = "Developer"
    CONSULTANT = "Consultant"
    SUPPORT = "Support"


class TicketType(str, Enum):
    FEATURE = "Feature"
    BUG = "Bug"
    ENHANCEMENT = "Enhancement"
    RESEARCH = "Research"
    DOCUMENTATION = "Documentation"
    TESTING = "Testing"


class TicketStatus(str, Enum):
    BACKLOG = "Backlog"
    IN_PROGRESS = "In Progress"
    REVIEW = "Review"
    TESTING = "Testing"
    DONE = "Done"
    BLOCKED = "Blocked"


class InvoiceType(str, Enum):
    MILESTONE = "Milestone"
    MONTHLY_RETAINER = "Monthly Retainer"
    TIME_AND_MATERIALS = "Time & Materials"
    FIXED_PRICE = "Fixed Price"


class PaymentStatus(str, Enum):
    DRAFT = "Draft"
    SENT = "Sent"
    PAID = "Paid"
    OVERDUE = "Overdue"
    CANCELLED = "Cancelled"


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "Bank Transfer"
    CREDIT_CARD = "Credit Card"
    PAYPAL = "PayPal"
    CHECK = "Check"
    CRYPTO = "Crypto"


class ContractType(str, Enum):
    MSA = "Master Service Agreement"
    SOW = "Statement of Work"
    RETAINER = "Retainer Agreement"
    NDA = "NDA"
    CONSULTING = "Consulting Agreement"


class RenewalTerms(str, Enum):
    AUTO_RENEW = "Auto-renew"
    MANUAL = "Manual Renewal"
    ONE_TIME = "One-time"
    EVERGREEN = "Evergreen"


class ContractStatus(str, Enum):
    DRAFT = "Draft"
    UNDER_REVIEW = "Under Review"
    ACTIVE = "Active"
    EXPIRED = "Expired"
    TERMINATED = "Terminated"


def values(enum_cls: type[Enum]) -> list[Any]:
    """Return the plain values of an enum, in declaration order."""
    return [member.value for member in enum_cls]


@dataclass(frozen=True)
class WeightedCategories:
    """A categorical domain that is not a fixed enum, with optional weights."""

    values: tuple[Any, ...]
    weights: tuple[float, ...] | None = None

    def __post_init__(self) -> None:
        if self.weights is not None and len(self.weights) != len(self.values):
            raise ValueError("weights must have the same length as values")


STORY_POINTS = WeightedCategories(values=(1, 2, 3, 5, 8, 13, 21))

RETAINER_PAYMENT_STATUS = WeightedCategories(
    values=tuple(values(PaymentStatus)), weights=(5, 10, 70, 10, 5)
)
PROJECT_PAYMENT_STATUS = WeightedCategories(
    values=tuple(values(PaymentStatus)), weights=(3, 7, 75, 12, 3)
)


@dataclass(frozen=True)
class ColumnSpec:
    """Declaration of a single column."""

    name: str
    type: ColumnType
    categories: type[Enum] | WeightedCategories | None = None
    min: float | None = None
    max: float | None = None
    distribution: Distribution | None = None
    nullable: bool = False
    # (column, value): the column is populated only when `column == value`.
    present_when: tuple[str, str] | None = None
    description: str = ""

    @property
    def domain(self) -> list[Any] | None:
        """Allowed values for categorical columns."""
        if self.categories is None:
            return None
        if isinstance(self.categories, WeightedCategories):
            return list(self.categories.values)
        return values(self.categories)

    @property
    def is_numeric(self) -> bool:
        return self.type == ColumnType.NUMERICAL


@dataclass(frozen=True)
class ForeignKey:
    column: str
    references_table: str
    references_column: str


@dataclass(frozen=True)
class TableSpec:
    """Declaration of a table."""

    name: str
    id_prefix: str
    primary_key: str
    columns: tuple[ColumnSpec, ...]
    foreign_keys: tuple[ForeignKey, ...] = field(default_factory=tuple)

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def column(self, name: str) -> ColumnSpec | None:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def columns_of_type(self, *types: ColumnType) -> list[str]:
        return [c.name for c in self.columns if c.type in types]

    @property
    def foreign_key_columns(self) -> list[str]:
        return [fk.column for fk in self.foreign_keys]


def format_id(prefix: str, number: int) -> str:
    """Format an identifier as ``PREFIX_%06d``."""
    return f"{prefix}_{number:0{ID_WIDTH}d}"


def parse_id(value: str) -> tuple[str, int]:
    """Split an identifier into prefix and sequence number.

    Raises:
        ValueError: If the value is not ``PREFIX_<digits>``.
    """
    match = ID_PATTERN.match(str(value))
    if match is None:
        raise ValueError(f"Malformed identifier: {value!r}")
    return match.group("prefix"), int(match.group("number"))


def _id(name: str, description: str = "") -> ColumnSpec:
    return ColumnSpec(name, ColumnType.IDENTIFIER, description=description)


def _cat(name: str, categories: type[Enum] | WeightedCategories, nullable: bool = False) -> ColumnSpec:
    return ColumnSpec(name, ColumnType.CATEGORICAL, categories=categories, nullable=nullable)


def _num(
    name: str,
    low: float,
    high: float,
    distribution: Distribution | None = None,
    description: str = "",
) -> ColumnSpec:
    return ColumnSpec(
        name,
        ColumnType.NUMERICAL,
        min=low,
        max=high,
        distribution=distribution,
        description=description,
    )


def _date(name: str, nullable: bool = False, present_when: tuple[str, str] | None = None) -> ColumnSpec:
    return ColumnSpec(name, ColumnType.DATETIME, nullable=nullable, present_when=present_when)


CLIENTS = TableSpec(
    name="clients",
    id_prefix="CLT",
    primary_key="client_id",
    columns=(
        _id("client_id", "Unique client identifier"),
        ColumnSpec("company_name", ColumnType.TEXT, description="Business name"),
        _cat("industry", Industry),
        _cat("company_size", CompanySize),
        _num("annual_revenue", 50_000, 50_000_000_000, Distribution.LOG_NORMAL),
        _cat("headquarters_country", Country),
        ColumnSpec("contact_email", ColumnType.EMAIL),
        ColumnSpec("phone", ColumnType.PHONE),
        ColumnSpec("website", ColumnType.URL),
        _cat("acquisition_channel", AcquisitionChannel),
        _num("risk_score", 0.1, 1.0, Distribution.BETA),
        _num("monthly_retainer", 5_000, 100_000, Distribution.EXPONENTIAL),
        _date("client_since"),
    ),
)

TEAM_MEMBERS = TableSpec(
    name="team_members",
    id_prefix="TM",
    primary_key="member_id",
    columns=(
        _id("member_id"),
        ColumnSpec("first_name", ColumnType.TEXT),
        ColumnSpec("last_name", ColumnType.TEXT),
        _cat("role", Role),
        _cat("seniority", Seniority),
        _num("hourly_rate", 50, 360, Distribution.NORMAL),
        ColumnSpec("skills", ColumnType.TEXT, description="Comma-separated technical skills"),
        _num("availability", 0.2, 1.0, description="Fraction of time available"),
        _date("hire_date"),
    ),
)

PROJECTS = TableSpec(
    name="projects",
    id_prefix="PRJ",
    primary_key="project_id",
    columns=(
        _id("project_id"),
        _id("client_id"),
        ColumnSpec("project_name", ColumnType.TEXT, description="Descriptive project title"),
        _cat("project_type", ProjectType),
        _cat("tech_stack", TechStack),
        _cat("project_status", ProjectStatus),
        _cat("priority", Priority),
        _date("start_date"),
        _date("planned_end_date"),
        _date("actual_end_date", nullable=True, present_when=("project_status", ProjectStatus.COMPLETED.value)),
        _num("budget_original", 100, 1_000_000, Distribution.LOG_NORMAL),
        _num("budget_current", 100, 1_500_000, Distribution.LOG_NORMAL),
        _num("hours_estimated", 1, 7_000, Distribution.GAMMA),
        _num("hours_actual", 0, 10_000, Distribution.GAMMA),
        _num("team_size", 1, 12, Distribution.POISSON),
        _num("complexity_score", 1, 10, Distribution.NORMAL),
    ),
    foreign_keys=(ForeignKey("client_id", "clients", "client_id"),),
)

PROJECT_ASSIGNMENTS = TableSpec(
    name="project_assignments",
    id_prefix="ASN",
    primary_key="assignment_id",
    columns=(
        _id("assignment_id"),
        _id("project_id"),
        _id("member_id"),
        _cat("role_on_project", AssignmentRole),
        _num("hours_allocated", 0, 10_500, Distribution.EXPONENTIAL),
        _num("hours_logged", 0, 14_000, Distribution.EXPONENTIAL),
        _date("start_date"),
        _date("end_date", nullable=True),
    ),
    foreign_keys=(
        ForeignKey("project_id", "projects", "project_id"),
        ForeignKey("member_id", "team_members", "member_id"),
    ),
)

TICKETS = TableSpec(
    name="tickets",
    id_prefix="TKT",
    primary_key="ticket_id",
    columns=(
        _id("ticket_id"),
        _id("project_id"),
        ColumnSpec("ticket_title", ColumnType.TEXT),
        _cat("ticket_type", TicketType),
        _cat("priority", Priority),
        _cat("status", TicketStatus),
        _id("assignee_id"),
        _cat("story_points", STORY_POINTS),
        _date("created_date"),
        _date("completed_date", nullable=True, present_when=("status", TicketStatus.DONE.value)),
        _num("estimated_hours", 0.5, 130, Distribution.EXPONENTIAL),
        _num("actual_hours", 0.25, 240, Distribution.EXPONENTIAL),
    ),
    foreign_keys=(
        ForeignKey("project_id", "projects", "project_id"),
        ForeignKey("assignee_id", "team_members", "member_id"),
    ),
)

INVOICES = TableSpec(
    name="invoices",
    id_prefix="INV",
    primary_key="invoice_id",
    columns=(
        _id("invoice_id"),
        _id("client_id"),
        ColumnSpec("project_id", ColumnType.IDENTIFIER, nullable=True),
        _cat("invoice_type", InvoiceType),
        _date("invoice_date"),
        _date("due_date"),
        _num("amount_gross", 10, 1_500_000, Distribution.LOG_NORMAL),
        _num("tax_amount", 0, 225_000, Distribution.EXPONENTIAL),
        _num("amount_net", 0, 1_500_000, Distribution.LOG_NORMAL, "amount_gross - tax_amount"),
        _cat("payment_status", PaymentStatus),
        _date("payment_date", nullable=True, present_when=("payment_status", PaymentStatus.PAID.value)),
        _cat("payment_method", PaymentMethod),
    ),
    foreign_keys=(
        ForeignKey("client_id", "clients", "client_id"),
        ForeignKey("project_id", "projects", "project_id"),
    ),
)

CONTRACTS = TableSpec(
    name="contracts",
    id_prefix="CTR",
    primary_key="contract_id",
    columns=(
        _id("contract_id"),
        _id("client_id"),
        _cat("contract_type", ContractType),
        _date("start_date"),
        _date("end_date"),
        _num("contract_value", 20_000, 4_000_000, Distribution.LOG_NORMAL),
        _cat("renewal_terms", RenewalTerms),
        _cat("status", ContractStatus),
    ),
    foreign_keys=(ForeignKey("client_id", "clients", "client_id"),),
)

TABLES: dict[str, TableSpec] = {
    spec.name: spec
    for spec in (
        CLIENTS,
        TEAM_MEMBERS,
        PROJECTS,
        PROJECT_ASSIGNMENTS,
        TICKETS,
        INVOICES,
        CONTRACTS,
    )
}

# Root tables generated directly from rules.
BASE_TABLES = ["clients", "team_members"]

# The order in which tables must be generated to satisfy foreign key dependencies.
GENERATION_ORDER = [
    "clients",
    "team_members",
    "projects",
    "project_assignments",
    "tickets",
    "invoices",
    "contracts",
]

DEPENDENCIES = {
    name: sorted({fk.references_table for fk in spec.foreign_keys})
    for name, spec in TABLES.items()
}

EXPECTED_COLUMNS = {name: spec.column_names for name, spec in TABLES.items()}

# Columns that must never be null in a final table.
REQUIRED_COLUMNS = {
    "clients": ["client_id", "company_name", "industry", "company_size", "annual_revenue"],
    "team_members": ["member_id", "role", "seniority", "hourly_rate"],
    "projects": ["project_id", "client_id", "project_name", "budget_original"],
    "project_assignments": ["assignment_id", "project_id", "member_id"],
    "tickets": ["ticket_id", "project_id", "assignee_id", "story_points"],
    "invoices": ["invoice_id", "client_id", "amount_gross"],
    "contracts": ["contract_id", "client_id", "contract_value"],
}

# (source column, target table, target column) per child table.
FK_MAPPINGS = {
    name: [(fk.column, fk.references_table, fk.references_column) for fk in spec.foreign_keys]
    for name, spec in TABLES.items()
    if spec.foreign_keys
}


def get_table_spec(table_name: str) -> TableSpec:
    """Look up a table declaration.

    Raises:
        KeyError: If the table is not registered.
    """
    try:
        return TABLES[table_name]
    except KeyError:
        raise KeyError(f"Unknown table '{table_name}'. Known tables: {list(TABLES)}") from None


def _column_as_dict(col: ColumnSpec) -> dict[str, Any]:
    out: dict[str, Any] = {"type": col.type.value}
    if col.description:
        out["description"] = col.description
    if col.domain is not None:
        out["categories"] = col.domain
    if isinstance(col.categories, WeightedCategories) and col.categories.weights:
        out["weights"] = list(col.categories.weights)
    if col.min is not None:
        out["min"] = col.min
    if col.max is not None:
        out["max"] = col.max
    if col.distribution is not None:
        out["distribution"] = col.distribution.value
    if col.nullable:
        out["nullable"] = True
    if col.present_when is not None:
        out["present_when"] = {"column": col.present_when[0], "equals": col.present_when[1]}
    return out


def schema_as_dict() -> dict[str, Any]:
    """Return the registry as plain data, suitable for YAML or JSON."""
    tables: dict[str, Any] = {}
    for name in GENERATION_ORDER:
        spec = TABLES[name]
        entry: dict[str, Any] = {
            "primary_key": spec.primary_key,
            "id_prefix": spec.id_prefix,
        }
        if spec.foreign_keys:
            entry["foreign_keys"] = [
                {"column": fk.column, "references": f"{fk.references_table}.{fk.references_column}"}
                for fk in spec.foreign_keys
            ]
        entry["columns"] = {col.name: _column_as_dict(col) for col in spec.columns}
        tables[name] = entry
    return {"tables": tables}


def schema_definition() -> str:
    """Stable string form of the registry, used for the schema snapshot id."""
    return json.dumps(schema_as_dict(), sort_keys=True, default=str)
