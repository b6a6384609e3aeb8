"""
Script to seed a demo campaign with leads, communications, activities,
scraped intelligence and workflow rules.
Run this after setting up the environment to try the analytics endpoints.
"""

import random
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from history import LeadHistoryStore
from observability import trace_logger


COMPANIES = [
    ("Acme Corp", "Manufacturing", "https://acme.example.com"),
    ("Beta Technologies", "Software", "https://beta.example.com"),
    ("Gamma Solutions", "Consulting", "https://gamma.example.com"),
    ("Delta Enterprises", "E-commerce", "https://delta.example.com"),
    ("Epsilon Systems", "Healthcare Tech", "https://epsilon.example.com"),
    ("Zeta Digital", "Marketing", "https://zeta.example.com"),
    ("Theta Analytics", "Data Science", "https://theta.example.com"),
    ("Iota Innovations", "IoT", "https://iota.example.com"),
    ("Kappa Cloud", "Cloud Services", "https://kappa.example.com"),
    ("Lambda Labs", "Research", "https://lambda.example.com"),
]

FIRST_NAMES = ["John", "Sarah", "Michael", "Emily", "David", "Jessica", "Robert", "Lisa"]
LAST_NAMES = ["Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis"]
TITLES = ["CEO", "CTO", "VP of Sales", "Head of Marketing", "Director of Operations"]
STATUSES = ["new", "contacted", "responded", "qualified", "unqualified", "converted", "rejected"]
EMAIL_STATUSES = ["sent", "delivered", "opened", "clicked", "replied"]


def days_ago(days: float) -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=days)


def seed_demo_data(database_url: str = None, seed: int = 42) -> int:
    """
    Create one demo campaign.

    Args:
        database_url: Target database (defaults to configured DATABASE_URL)
        seed: Random seed so repeated runs produce the same data

    Returns:
        Id of the created campaign
    """
    rng = random.Random(seed)
    store = LeadHistoryStore(database_url)

    campaign = store.create_campaign(name="Q3 Outbound Demo")
    print(f"Created campaign {campaign.id}: {campaign.name}")

    for company, industry, website in COMPANIES:
        first, last = rng.choice(FIRST_NAMES), rng.choice(LAST_NAMES)
        domain = website.replace("https://", "")
        created = days_ago(rng.randint(10, 60))
        status = rng.choice(STATUSES)
        contacted = status != "new"

        lead = store.create_lead(
            campaign_id=campaign.id,
            company_name=company,
            company_industry=industry,
            company_website=website,
            contact_name=f"{first} {last}",
            contact_email=f"{first.lower()}.{last.lower()}@{domain}",
            contact_phone=f"+1-555-{rng.randint(1000, 9999)}",
            contact_job_title=rng.choice(TITLES),
            confidence_score=rng.randint(30, 95),
            status=status,
            created_at=created,
            last_contacted_at=days_ago(rng.uniform(0.5, 20)) if contacted else None
        )

        if contacted:
            for i in range(rng.randint(1, 4)):
                sent = created + timedelta(days=2 * i + 1)
                email_status = rng.choice(EMAIL_STATUSES)
                store.create_communication_log(
                    lead_id=lead.id,
                    campaign_id=campaign.id,
                    communication_type=rng.choice(["email", "email", "sms"]),
                    direction="outbound",
                    subject="Quick introduction" if i == 0 else "Following up",
                    status=email_status,
                    sent_at=sent,
                    created_at=sent + timedelta(hours=rng.randint(1, 48)) if email_status == "replied" else sent
                )

            if rng.random() < 0.5:
                call_at = created + timedelta(days=rng.randint(3, 9))
                store.create_activity(
                    lead_id=lead.id,
                    campaign_id=campaign.id,
                    activity_type="call",
                    description=rng.choice(["Discovery call", "No answer, left voicemail"]),
                    status="completed",
                    completed_at=call_at,
                    created_at=call_at
                )

        store.create_scraped_data(
            lead_id=lead.id,
            source_url=website,
            raw_data={"about": f"{company} is expanding after a Series B funding round"}
            if rng.random() < 0.4 else {"about": f"{company} builds {industry.lower()} products"},
            processed_data={"hiring_signals": ["Sales Engineer"]} if rng.random() < 0.3 else {}
        )

        print(f"  Lead {lead.id}: {company} ({status})")

    store.create_workflow_rule(
        campaign_id=campaign.id,
        name="Nudge quiet leads",
        trigger_type="inactivity",
        trigger_config={"days": 7},
        action_type="send_email",
        action_config={"emailTemplate": "follow_up"}
    )
    store.create_workflow_rule(
        campaign_id=campaign.id,
        name="Alert on qualified",
        trigger_type="status_change",
        trigger_config={"targetStatus": "qualified", "cooldown_hours": 24},
        action_type="notify_owner"
    )
    store.create_workflow_rule(
        campaign_id=campaign.id,
        name="Monday call block",
        trigger_type="time_based",
        trigger_config={"schedule": "0 9 * * 1"},
        action_type="make_call"
    )
    print("Created 3 workflow rules")

    trace_logger.info("Demo data seeded", campaign_id=campaign.id, leads=len(COMPANIES))
    return campaign.id


if __name__ == "__main__":
    print("=" * 60)
    print("Demo Data Seeding Script")
    print("=" * 60)

    try:
        campaign_id = seed_demo_data()
    except Exception as e:
        print(f"\n✗ Seeding failed: {str(e)}")
        trace_logger.error_occurred(
            error_type="seed_error",
            error_message=str(e)
        )
        sys.exit(1)

    print(f"\n✓ Demo campaign {campaign_id} is ready")
    print("\nYou can now start the server with:")
    print("  python main.py")
