import os
import sys
from datetime import date, timedelta

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from adroi.core.db import SessionLocal
from adroi.core.security import hash_password
from adroi.models import Campaign, CampaignMetric, Organization, User
from adroi.services import clients, commercial, contracts, deals, notes, tasks


def run() -> None:
    db = SessionLocal()
    try:
        if db.query(User).filter(User.email == "owner@demo.local").first():
            print("Seed already applied")
            return

        org = Organization(name="Demo Agency")
        db.add(org)
        db.flush()
        db.add_all(
            [
                User(organization_id=org.id, email="owner@demo.local", full_name="Demo Owner", password_hash=hash_password("demo1234"), role="admin"),
                User(organization_id=org.id, email="manager@demo.local", full_name="Demo Manager", password_hash=hash_password("demo1234"), role="manager"),
                User(email="root@demo.local", full_name="Platform Admin", password_hash=hash_password("demo1234"), role="super_admin"),
            ]
        )
        db.commit()

        today = date.today()
        shop = clients.create_client(db, org.id, name="Loja Aurora", company="Aurora Moda", ad_account_id="act_1001")
        clinic = clients.create_client(db, org.id, name="Clinica Vita", company="Vita Saude")
        clients.update_client(db, org.id, shop.id, target_roas=4.0, target_cpa=40, budget_limit=8000, crm_enabled=True)

        for client, names in ((shop, ["Prospecting", "Remarketing"]), (clinic, ["Leads Form"])):
            for name in names:
                campaign = Campaign(organization_id=org.id, client_id=client.id, name=name, platform="meta", objective="SALES")
                db.add(campaign)
                db.flush()
                for offset in range(14):
                    day = today - timedelta(days=offset)
                    spend = 120 + offset * 5
                    db.add(
                        CampaignMetric(
                            organization_id=org.id,
                            campaign_id=campaign.id,
                            date=day,
                            spend=spend,
                            revenue=spend * (3.5 if name == "Remarketing" else 2.1),
                            leads=8 + offset % 4,
                            impressions=9000 + offset * 150,
                            clicks=300 + offset * 7,
                            purchases=3 + offset % 3,
                        )
                    )
        db.commit()

        deals.create_deal(db, org.id, shop.id, day=today - timedelta(days=2), description="Atacado", quantity=3, unit_value=450)
        deals.create_deal(db, org.id, clinic.id, day=today - timedelta(days=5), description="Pacote anual", total_value=3200)
        commercial.add_activity(db, org.id, shop.id, kind="meeting", day=today - timedelta(days=3), prospect_name="Boutique Sol", lead_quality_score=4)
        commercial.add_activity(db, org.id, shop.id, kind="proposal", day=today - timedelta(days=1), prospect_name="Boutique Sol", value=5400)
        notes.create_note(db, org.id, shop.id, title="Kickoff", content="Focus on remarketing during sales week.", is_pinned=True)
        contracts.create_contract(
            db, org.id, shop.id, kind="hybrid", start_date=today - timedelta(days=200), end_date=today + timedelta(days=20),
            monthly_value=2500, commission_percent=5,
        )

        project = tasks.create_project(db, org.id, title="Aurora relaunch", client_id=shop.id)
        tasks.create_task(db, org.id, title="Review creatives", category="do_now", priority="high", client_id=shop.id, project_id=project.id)
        tasks.create_task(db, org.id, title="Monthly report", category="schedule", due_date=today + timedelta(days=7))
        tasks.create_goal(db, org.id, title="Reach 10 active clients")

        print("Seed complete: owner@demo.local / demo1234")
    finally:
        db.close()


if __name__ == "__main__":
    run()
