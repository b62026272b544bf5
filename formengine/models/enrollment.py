from enum import Enum

from pydantic import BaseModel


class ParticipantRole(str, Enum):
    INDIVIDUAL = "individual"
    LEADER = "leader"
    MEMBER = "member"


class InvitationStatus(str, Enum):
    ACCEPTED = "accepted"
    PENDING = "pending"


class Enrollment(BaseModel):
    form_id: str
    respondent_id: str
    role: ParticipantRole = ParticipantRole.INDIVIDUAL
    team_id: str | None = None
    leader_id: str | None = None
    invitation_status: InvitationStatus = InvitationStatus.ACCEPTED

    @property
    def owner_id(self) -> str | None:
        """Key of the shared answer set: the team in team mode, else the respondent.

        None for a member with neither team nor leader; members own no record.
        """
        if self.team_id:
            return self.team_id
        if self.role == ParticipantRole.MEMBER:
            return self.leader_id
        return self.respondent_id

    @property
    def author_id(self) -> str:
        if self.role == ParticipantRole.MEMBER and self.leader_id:
            return self.leader_id
        return self.respondent_id
