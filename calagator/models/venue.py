from sqlalchemy import Column, Integer, String, Float, DateTime, Text

from calagator.database import Base
from calagator.time_utils import now


class Venue(Base):
    __tablename__ = "venues"
    
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text)
    address = Column(String(255))
    street_address = Column(String(255))
    locality = Column(String(100))
    region = Column(String(100))
    postal_code = Column(String(20))
    country = Column(String(100))
    latitude = Column(Float)
    longitude = Column(Float)
    url = Column(String(2048))
    
    # Number of events at this venue that are not marked as duplicates
    events_count = Column(Integer, nullable=False, default=0)
    
    created_at = Column(DateTime, default=now, nullable=False)
    updated_at = Column(DateTime, default=now, onupdate=now)

    @property
    def full_address(self) -> str:
        """Formatted address, falling back to the free-form ``address``."""
        city_line = " ".join(part for part in (self.locality, self.region, self.postal_code) if part)
        parts = [part for part in (self.street_address, city_line, self.country) if part]
        if parts:
            return ", ".join(parts)
        return self.address or ""

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def __repr__(self):
        return f"<Venue {self.id}: {self.title}>"
