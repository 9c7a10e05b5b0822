from teammatch.models.profile import Profile
from teammatch.models.team import Team, TeamMember
from teammatch.models.match import Match
from teammatch.models.conversation import Conversation, ConversationParticipant
from teammatch.models.message import Message, MessageRead

__all__ = [
    "Profile",
    "Team",
    "TeamMember",
    "Match",
    "Conversation",
    "ConversationParticipant",
    "Message",
    "MessageRead",
]
