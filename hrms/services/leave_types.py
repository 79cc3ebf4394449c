"""
Leave-type catalogue.

Every leave name the system knows maps to exactly one ``LeaveCategory``.
Matching is by exact display name (or a registered legacy alias), never by
substring, so "Special Casual" can never be mistaken for "Casual".
Names that are not in the catalogue resolve to ``LeaveCategory.OTHER`` and
are governed purely by the leave configuration table.
"""
import enum
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple


class LeaveCategory(str, enum.Enum):
    CASUAL = "casual"
    CARRY_FORWARD = "carry_forward"
    PRIVILEGE = "privilege"
    SICK = "sick"
    MATERNITY = "maternity"
    PATERNITY = "paternity"
    SPECIAL = "special"
    UNPAID = "unpaid"
    OTHER = "other"


class BalanceWindow(str, enum.Enum):
    ANNUAL = "annual"
    LIFETIME = "lifetime"


class Gender(str, enum.Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"


@dataclass(frozen=True)
class LeaveType:
    name: str
    category: LeaveCategory
    window: BalanceWindow = BalanceWindow.ANNUAL
    gender: Optional[Gender] = None
    # Entitlement used when no configuration row overrides it
    default_limit: float = 0.0
    # One-time extension: once usage reaches the base limit, the limit becomes this
    extended_limit: Optional[float] = None
    default_max_per_request: Optional[float] = None
    default_min_per_request: Optional[float] = None
    aliases: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def names(self) -> Tuple[str, ...]:
        """Every stored ``ltype`` value that counts against this leave type."""
        return (self.name,) + self.aliases

    @property
    def is_unpaid(self) -> bool:
        return self.category == LeaveCategory.UNPAID

    @property
    def counts_working_days_only(self) -> bool:
        return self.category == LeaveCategory.CASUAL

    @property
    def always_requires_document(self) -> bool:
        return self.category in (LeaveCategory.MATERNITY, LeaveCategory.PATERNITY, LeaveCategory.SPECIAL)

    def limit_for_usage(self, base_limit: float, used: float) -> float:
        """Apply the one-time extension (e.g. Tubectomy 14 -> 28) once the base limit is consumed."""
        if self.extended_limit is None or base_limit <= 0 or used < base_limit:
            return base_limit
        if base_limit == self.default_limit or not self.default_limit:
            return self.extended_limit
        # Configured base differs from the catalogue: keep the same extension ratio
        return base_limit * self.extended_limit / self.default_limit

    def applies_to(self, gender: str) -> bool:
        return self.gender is None or self.gender.value == gender


CASUAL_LEAVE = LeaveType("Casual Leave", LeaveCategory.CASUAL, default_limit=8, default_max_per_request=5)
CARRY_FORWARD_LEAVE = LeaveType("LYCL", LeaveCategory.CARRY_FORWARD)
PRIVILEGE_LEAVE = LeaveType("Privilege Leave", LeaveCategory.PRIVILEGE, default_min_per_request=5)
SICK_LEAVE = LeaveType("Sick Leave", LeaveCategory.SICK)

MATERNITY_PREGNANCY = LeaveType(
    "Maternity (Pregnancy)", LeaveCategory.MATERNITY, BalanceWindow.LIFETIME, Gender.FEMALE,
    default_limit=360, default_max_per_request=180, aliases=("Maternity Leave",),
)
MATERNITY_ABORTION = LeaveType(
    "Maternity (Abortion)", LeaveCategory.MATERNITY, BalanceWindow.LIFETIME, Gender.FEMALE,
    default_limit=45,
)
PATERNITY_LEAVE = LeaveType(
    "Paternity Leave", LeaveCategory.PATERNITY, BalanceWindow.LIFETIME, Gender.MALE,
    default_limit=15, default_max_per_request=15,
)


def _scl(name: str, gender: Optional[Gender], limit: float, extended: Optional[float] = None) -> LeaveType:
    return LeaveType(
        name, LeaveCategory.SPECIAL, BalanceWindow.LIFETIME, gender,
        default_limit=limit, extended_limit=extended,
    )


SCL_TUBECTOMY = _scl("SCL - Tubectomy", Gender.FEMALE, 14, extended=28)
SCL_VASECTOMY = _scl("SCL - Vasectomy", Gender.MALE, 6, extended=12)

SPECIAL_CATEGORY_LEAVES = (
    SCL_TUBECTOMY,
    _scl("SCL - IUD Insertion", Gender.FEMALE, 1),
    _scl("SCL - IUCD Insertion", Gender.FEMALE, 1),
    _scl("SCL - MTP Salpingectomy", Gender.FEMALE, 14),
    _scl("SCL - Husband Vasectomy", Gender.FEMALE, 1),
    SCL_VASECTOMY,
    _scl("SCL - Wife Tubectomy", Gender.MALE, 7),
    _scl("SCL - Recanalization", None, 21),
)

LWP = LeaveType("LWP", LeaveCategory.UNPAID)
EXTRAORDINARY_LEAVE = LeaveType("Extraordinary Leave", LeaveCategory.UNPAID)

CATALOGUE: Tuple[LeaveType, ...] = (
    CASUAL_LEAVE,
    PRIVILEGE_LEAVE,
    SICK_LEAVE,
    CARRY_FORWARD_LEAVE,
    MATERNITY_PREGNANCY,
    MATERNITY_ABORTION,
    PATERNITY_LEAVE,
    *SPECIAL_CATEGORY_LEAVES,
    LWP,
    EXTRAORDINARY_LEAVE,
)

_BY_NAME: Dict[str, LeaveType] = {}
for _leave_type in CATALOGUE:
    for _name in _leave_type.names:
        _BY_NAME[_name.strip().lower()] = _leave_type


def resolve_leave_type(name: str) -> LeaveType:
    """Exact (case-insensitive) lookup; unknown names become configuration-driven ``OTHER`` types."""
    cleaned = (name or "").strip()
    known = _BY_NAME.get(cleaned.lower())
    if known is not None:
        return known
    return LeaveType(cleaned, LeaveCategory.OTHER)
