"""
User Model
Represents people who initiate, approve and receive fund requests
"""

from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from fund_approval.config.database import Base


class User(Base):
    """User model"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(150), unique=True, index=True, nullable=True)
    full_name = Column(String(200), nullable=True)
    email = Column(String(255), index=True, nullable=True)

    # Organizational placement
    designation_id = Column(Integer, ForeignKey("designations.id"), nullable=True, index=True)
    designation_name = Column(String(200), nullable=True)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=True, index=True)
    # Legacy direct project link; project membership normally lives in user_projects
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=True)

    is_active = Column(Boolean, default=True)

    # Relationships
    designation = relationship("Designation", foreign_keys=[designation_id])
    delegations_from = relationship(
        "Delegation", back_populates="from_user", foreign_keys="Delegation.from_user_id"
    )
    delegations_to = relationship(
        "Delegation", back_populates="to_user", foreign_keys="Delegation.to_user_id"
    )

    def __repr__(self):
        return f"<User {self.id} {self.username}>"


class UserProject(Base):
    """Email-based mapping of users to projects"""
    __tablename__ = "user_projects"
    __table_args__ = (
        UniqueConstraint("project_id", "email_id", name="uq_user_projects_project_email"),
    )

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    email_id = Column(String(255), nullable=False)

    project = relationship("Project")

    def __repr__(self):
        return f"<UserProject {self.project_id} {self.email_id}>"
