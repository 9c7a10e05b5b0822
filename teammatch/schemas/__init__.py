from teammatch.schemas.profiles import ProfileCreate, ProfileUpdate, ProfileOut
from teammatch.schemas.teams import TeamCreate, TeamUpdate, TeamOut, TeamMemberOut, RoleChange
from teammatch.schemas.matches import SwipeRequest, MatchOut, CreatedMatch, SwipeResponse, JoinRequestResponse
from teammatch.schemas.conversations import MessageCreate, MessageOut, ConversationOut, UnreadSummary
from teammatch.schemas.activity import ActivityEntryOut, ActivityOut
