from sqlalchemy import Column, Integer, String, DateTime, JSON

from calagator.database import Base
from calagator.time_utils import now


class EventVersion(Base):
    """Append-only snapshot of an event, written with every persisted change."""
    __tablename__ = "event_versions"
    
    id = Column(Integer, primary_key=True, index=True)
    # No foreign key: versions outlive the event they describe
    event_id = Column(Integer, nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    action = Column(String(20), nullable=False)  # create, update, destroy
    snapshot = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=now, nullable=False)

    def __repr__(self):
        return f"<EventVersion {self.event_id}@{self.sequence} {self.action}>"
