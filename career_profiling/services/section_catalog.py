"""
Section catalog - the fixed, ordered list of five test sections
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from career_profiling.exceptions import NotFoundError
from career_profiling.models import Section

logger = logging.getLogger(__name__)


class SectionCatalog:
    
    TOTAL_SECTIONS = 5
    
    def list_active(self, db: Session) -> List[Section]:
        return (
            db.query(Section)
            .filter(Section.is_active.is_(True))
            .order_by(Section.order_index)
            .all()
        )
    
    def resolve(self, db: Session, section_ref: int) -> Section:
        """
        Find a section by primary key, falling back to order_index for
        references in 1..5 (clients address sections by either)
        """
        section = db.query(Section).filter(Section.id == section_ref).first()
        
        if section is None and 1 <= section_ref <= self.TOTAL_SECTIONS:
            section = db.query(Section).filter(Section.order_index == section_ref).first()
        
        if section is None:
            raise NotFoundError("Section not found", error_code="SECTION_NOT_FOUND")
        
        return section
    
    def next_section(self, db: Session, section: Section) -> Optional[Section]:
        return (
            db.query(Section)
            .filter(
                Section.order_index == section.order_index + 1,
                Section.is_active.is_(True)
            )
            .first()
        )
    
    def previous_sections(self, db: Session, section: Section) -> List[Section]:
        return (
            db.query(Section)
            .filter(
                Section.order_index < section.order_index,
                Section.is_active.is_(True)
            )
            .order_by(Section.order_index)
            .all()
        )


# Global instance
section_catalog = SectionCatalog()
