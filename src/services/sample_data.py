"""Sample activities inserted into an empty store on first start."""

from src.models.activity import ActivityCreate
from src.services.activity_store import ActivityStore
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

SAMPLE_ACTIVITIES = [
    {
        "task_name": "Setup Development Environment",
        "description": "Configure development tools and dependencies",
        "status": "In Progress", "priority": "High", "assignee": "John Doe",
        "start_date": "2025-06-01", "due_date": "2025-06-10",
        "progress": 75, "estimated_hours": 8.0, "actual_hours": 6.0,
        "tags": ["setup", "development"],
    },
    {
        "task_name": "Design Database Schema",
        "description": "Create database tables and relationships",
        "status": "Completed", "priority": "High", "assignee": "Jane Smith",
        "start_date": "2025-05-20", "due_date": "2025-05-30",
        "progress": 100, "estimated_hours": 12.0, "actual_hours": 10.0,
        "tags": ["database", "design"],
    },
    {
        "task_name": "Implement User Authentication",
        "description": "Add login and registration functionality",
        "status": "Not Started", "priority": "Medium", "assignee": "Mike Johnson",
        "start_date": "2025-06-15", "due_date": "2025-06-25",
        "progress": 0, "estimated_hours": 16.0, "actual_hours": 0.0,
        "tags": ["auth", "security"],
    },
    {
        "task_name": "Create API Endpoints",
        "description": "Develop REST API for task management",
        "status": "In Progress", "priority": "High", "assignee": "Sarah Wilson",
        "start_date": "2025-06-05", "due_date": "2025-06-20",
        "progress": 40, "estimated_hours": 20.0, "actual_hours": 8.0,
        "tags": ["api", "backend"],
    },
    {
        "task_name": "Frontend UI Development",
        "description": "Build the editable task grid",
        "status": "In Progress", "priority": "Medium", "assignee": "Alex Brown",
        "start_date": "2025-06-08", "due_date": "2025-06-30",
        "progress": 30, "estimated_hours": 24.0, "actual_hours": 7.2,
        "tags": ["frontend", "ui"],
    },
    {
        "task_name": "Write Unit Tests",
        "description": "Create comprehensive test suite",
        "status": "Not Started", "priority": "Medium", "assignee": "Chris Davis",
        "start_date": "2025-06-20", "due_date": "2025-07-05",
        "progress": 0, "estimated_hours": 14.0, "actual_hours": 0.0,
        "tags": ["testing", "unit-tests"],
    },
    {
        "task_name": "Setup CI/CD Pipeline",
        "description": "Configure automated deployment",
        "status": "Not Started", "priority": "Low", "assignee": "Taylor Johnson",
        "start_date": "2025-07-01", "due_date": "2025-07-15",
        "progress": 0, "estimated_hours": 10.0, "actual_hours": 0.0,
        "tags": ["devops", "ci-cd"],
    },
    {
        "task_name": "Performance Optimization",
        "description": "Optimize queries and improve performance",
        "status": "Not Started", "priority": "Medium", "assignee": "Jordan Lee",
        "start_date": "2025-07-10", "due_date": "2025-07-25",
        "progress": 0, "estimated_hours": 18.0, "actual_hours": 0.0,
        "tags": ["performance", "optimization"],
    },
]


def seed_sample_data(store: ActivityStore) -> int:
    """Insert the sample activities if the store is empty. Returns the number inserted."""
    existing = store.count_activities()
    if existing:
        logger.info("Skipping sample data, store is not empty", activities=existing)
        return 0

    for data in SAMPLE_ACTIVITIES:
        store.insert_activity(ActivityCreate.model_validate(data).to_row())

    logger.info("Inserted sample activities", inserted=len(SAMPLE_ACTIVITIES))
    return len(SAMPLE_ACTIVITIES)
