"""
Organization Models
Departments, designations and projects used to scope approvers
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey

from fund_approval.config.database import Base
from fund_approval.utils.helpers import utc_now


class Department(Base):
    """Department model"""
    __tablename__ = "departments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=True)
    short_name = Column(String(50), nullable=True)
    department_head_id = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True)

    def __repr__(self):
        return f"<Department {self.id} {self.name}>"


class Designation(Base):
    """Organizational role that makes a user eligible for a workflow step"""
    __tablename__ = "designations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=True)
    at_level = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True)

    def __repr__(self):
        return f"<Designation {self.id} {self.name}>"


class Project(Base):
    """Project model"""
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=True)
    created_at = Column(DateTime, default=utc_now)

    def __repr__(self):
        return f"<Project {self.id} {self.name}>"
