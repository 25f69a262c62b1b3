"""
Database Setup Script
Creates all tables and a small demo organization with one workflow

Run with: python -m fund_approval.database.setup_database
"""

from fund_approval.config.database import Base, SessionLocal, engine
from fund_approval.models.organization import Department, Designation, Project
from fund_approval.models.user import User, UserProject
from fund_approval.models.workflow import Workflow, WorkflowStep, WorkflowFinalReceiver
from fund_approval.models.approval import Approval, FinalReceiverAssignment
from fund_approval.models.fund_request import FundRequest
from fund_approval.models.delegation import Delegation
from fund_approval.models.email_outbox import EmailOutbox
from fund_approval.models.audit_log import RequestAuditEvent
from fund_approval.utils.security import create_access_token


def create_tables():
    """Create all database tables"""
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    print("✓ Database tables created successfully")


def create_demo_organization():
    """Create departments, designations, users, a project and a workflow"""
    print("\nCreating demo organization...")
    db = SessionLocal()

    try:
        if db.query(Department).first():
            print("✓ Organization already exists, skipping...")
            return

        operations = Department(name="Operations", short_name="OPS")
        finance = Department(name="Finance", short_name="FIN")
        db.add_all([operations, finance])
        db.flush()

        engineer = Designation(name="Engineer", department_id=operations.id, at_level=1)
        manager = Designation(name="Operations Manager", department_id=operations.id, at_level=2)
        controller = Designation(name="Finance Controller", department_id=finance.id, at_level=3)
        accountant = Designation(name="Accountant", department_id=finance.id, at_level=4)
        db.add_all([engineer, manager, controller, accountant])
        db.flush()

        people = [
            ("asha", "Asha Rao", "asha@fundsystem.com", engineer),
            ("vikram", "Vikram Shah", "vikram@fundsystem.com", manager),
            ("meera", "Meera Iyer", "meera@fundsystem.com", manager),
            ("rohan", "Rohan Das", "rohan@fundsystem.com", controller),
            ("nisha", "Nisha Kapoor", "nisha@fundsystem.com", accountant),
        ]
        users = {}
        for username, full_name, email, designation in people:
            u = User(
                username=username,
                full_name=full_name,
                email=email,
                designation_id=designation.id,
                designation_name=designation.name,
                department_id=operations.id,
                is_active=True
            )
            db.add(u)
            users[username] = u
        db.flush()

        project = Project(name="Plant Upgrade", department_id=operations.id)
        db.add(project)
        db.flush()
        for username in ("asha", "vikram", "rohan", "nisha"):
            db.add(UserProject(project_id=project.id, email_id=users[username].email))

        workflow = Workflow(
            name="Operations Fund Request",
            description="Manager then finance controller approval",
            department_id=operations.id,
            modified_by="setup"
        )
        workflow.steps = [
            WorkflowStep(step_name="Initiator", sequence=0, assigned_user_name="Initiator"),
            WorkflowStep(step_name="Manager Review", sequence=1, sla_hours=24, designation_id=manager.id,
                         designation_name=manager.name),
            WorkflowStep(step_name="Finance Review", sequence=2, sla_hours=48, designation_id=controller.id,
                         designation_name=controller.name),
            WorkflowStep(step_name="Final Receiver", sequence=3, is_final_receiver=True,
                         designation_id=accountant.id, designation_name=accountant.name),
        ]
        workflow.final_receivers = [WorkflowFinalReceiver(designation_name=accountant.name)]
        db.add(workflow)

        db.commit()
        print(f"✓ Created {len(users)} users, project '{project.name}' and workflow '{workflow.name}'")

        print("\nDevelopment access tokens:")
        for username, u in users.items():
            print(f"  {username}: {create_access_token({'sub': str(u.id), 'username': username})}")

    except Exception as e:
        print(f"✗ Error creating demo organization: {str(e)}")
        db.rollback()
        raise
    finally:
        db.close()


def main():
    """Main setup function"""
    print("=" * 60)
    print("Fund Approval System - Database Setup")
    print("=" * 60)

    create_tables()
    create_demo_organization()

    print("\n" + "=" * 60)
    print("✓ Database setup completed successfully!")
    print("=" * 60)


if __name__ == "__main__":
    main()
