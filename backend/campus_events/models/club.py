"""
Club model. Officers (president, vice-president, faculty coordinator) may
propose events on behalf of an active club.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, CheckConstraint

from campus_events.db.base import Base, TimestampMixin

CLUB_ACTIVE = "active"
CLUB_INACTIVE = "inactive"


class Club(Base, TimestampMixin):
    __tablename__ = "clubs"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False)
    type = Column(String(50), nullable=False)
    description = Column(String(1000), nullable=True)
    status = Column(String(20), nullable=False, default=CLUB_ACTIVE)
    president_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    vice_president_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    faculty_coordinator_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    __table_args__ = (
        CheckConstraint("status IN ('active', 'inactive')", name="check_club_status"),
    )

    @property
    def officer_ids(self) -> set[int]:
        ids = {self.president_id, self.vice_president_id, self.faculty_coordinator_id}
        ids.discard(None)
        return ids

    @property
    def is_active(self) -> bool:
        return self.status == CLUB_ACTIVE

    def __repr__(self) -> str:
        return f"<Club(id={self.id}, name={self.name}, status={self.status})>"
