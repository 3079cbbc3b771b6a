"""Seed an admin user and sample planning templates for demo purposes."""

from sqlalchemy.orm import Session

from planner.models.event import TeamEnum
from planner.models.planning_template import PlanningTemplate
from planner.models.user import User, RoleEnum
from planner.services.planning_service import planning_service


SAMPLE_TEMPLATES = [
    {
        "name": "Standard bar week",
        "description": "Happy hour on weekdays, live music on Saturday",
        "team": TeamEnum.bar.value,
        "template_events": [
            {"title": "Happy hour", "day_offset": d, "start_hour": 18, "end_hour": 20, "color": "#F5A623"}
            for d in range(5)
        ] + [
            {"title": "Live music", "day_offset": 5, "start_hour": 21, "end_hour": 23, "color": "#7B61FF"},
        ],
    },
    {
        "name": "Kids club week",
        "description": "Morning kids club and evening show",
        "team": TeamEnum.animation.value,
        "template_events": [
            {"title": "Kids club", "day_offset": 0, "start_hour": 10, "end_hour": 12},
            {"title": "Kids club", "day_offset": 2, "start_hour": 10, "end_hour": 12},
            {"title": "Evening show", "day_offset": 4, "start_hour": 21, "end_hour": 22, "start_minute": 0, "end_minute": 30},
        ],
    },
]


def seed_sample_data(db: Session, admin_uid: str, admin_email: str) -> None:
    """Insert the admin directory entry and sample templates if missing."""
    admin = db.get(User, admin_uid)
    if not admin:
        db.add(User(
            uid=admin_uid,
            email=admin_email,
            display_name="Administrator",
            role=RoleEnum.admin.value,
            teams=[t.value for t in TeamEnum],
        ))
        db.commit()

    for tmpl in SAMPLE_TEMPLATES:
        existing = db.query(PlanningTemplate).filter(
            PlanningTemplate.name == tmpl["name"],
            PlanningTemplate.team == tmpl["team"],
        ).first()
        if not existing:
            planning_service.create_template(
                db,
                tmpl["name"],
                tmpl["team"],
                tmpl["template_events"],
                admin_uid,
                description=tmpl["description"],
            )
    print("Seeded admin user and sample templates")
