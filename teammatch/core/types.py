from enum import Enum


class MatchType(str, Enum):
    individual_to_individual = "individual_to_individual"
    team_to_individual = "team_to_individual"
    individual_to_team = "individual_to_team"


class MatchStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"
    # symmetric interest between two individuals
    matched = "matched"


class ConversationKind(str, Enum):
    direct = "direct"
    team = "team"


class MemberRole(str, Enum):
    member = "member"
    admin = "admin"
    owner = "owner"


class MemberStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    rejected = "rejected"


class Studio(str, Enum):
    bigco = "bigco"
    startup = "startup"
    pitech = "pitech"


class Program(str, Enum):
    MBA = "MBA"
    CM = "CM"
    HealthTech = "HealthTech"
    UrbanTech = "UrbanTech"
    MEng_CS = "MEng-CS"
    MEng_DS = "MEng-DS"
    LLM = "LLM"


class SubjectType(str, Enum):
    user = "user"
    team = "team"


class SwipeDirection(str, Enum):
    left = "left"
    right = "right"


# roles allowed to act for a team (accept join requests, manage members)
TEAM_ADMIN_ROLES = frozenset({MemberRole.admin.value, MemberRole.owner.value})
