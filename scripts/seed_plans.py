from datetime import date

from sqlalchemy.orm import Session
from app.db.session import SessionLocal
from app.models.plan import SubscriptionPlan

PLANS = [
    # Month-based plans
    {"name": "Recordings - 1 Month", "type": "recordings_only",
      "price": 1500.00, "currency": "PKR", "duration_months": 1},

    {"name": "Live Classes - 1 Month", "type": "live_classes_only",
      "price": 2500.00, "currency": "PKR", "duration_months": 1},

    {"name": "Full Access - 3 Months", "type": "recordings_and_live",
      "price": 9000.00, "currency": "PKR", "duration_months": 3},

    # Fixed cutoff (e.g. runs until the exam session)
    {"name": "Full Access - Exam Session", "type": "recordings_and_live",
      "price": 12000.00, "currency": "PKR", "duration_until_date": date(date.today().year, 12, 31)},
]

def upsert_plan(db: Session, data: dict) -> SubscriptionPlan:
    plan = db.query(SubscriptionPlan).filter(SubscriptionPlan.name == data["name"]).first()
    if plan:
        for k, v in data.items():
            setattr(plan, k, v)
        return plan

    plan = SubscriptionPlan(**data)
    db.add(plan)
    return plan

def main():
    db = SessionLocal()
    try:
        for data in PLANS:
            upsert_plan(db, data)
        db.commit()
        print("Seeded plans:", [p["name"] for p in PLANS])
    finally:
        db.close()

if __name__ == "__main__":
    main()
