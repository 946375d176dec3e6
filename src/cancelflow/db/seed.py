from __future__ import annotations

from sqlalchemy.orm import Session

from cancelflow.db.repositories import Repository

DEMO_ACCOUNTS: list[dict[str, object]] = [
    {"email": "user1@example.com", "monthly_price": 2500},
    {"email": "user2@example.com", "monthly_price": 2900},
    {"email": "user3@example.com", "monthly_price": 2500},
]


def seed_demo_accounts(session: Session) -> int:
    repo = Repository(session)
    inserted = 0
    with repo.atomic():
        for account in DEMO_ACCOUNTS:
            email = str(account["email"])
            if repo.get_user_by_email(email):
                continue
            user = repo.create_user(email)
            repo.create_subscription(user_id=user.id, monthly_price=int(account["monthly_price"]))
            inserted += 1
    return inserted
