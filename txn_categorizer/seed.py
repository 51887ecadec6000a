"""Seed default categories, demo users, sample transactions, predictions and feedback.

Usage:

    python -m txn_categorizer.seed

Each table is only seeded when it is empty, so re-running is harmless.
Category rows are inserted in the order the classifier's id table expects
(Groceries=1 ... Other=9).
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from .database import Category, Feedback, Prediction, SessionLocal, Transaction, User, init_db
from .security import hash_password

logger = logging.getLogger("txn_categorizer.seed")

DEFAULT_CATEGORIES = [
    ("Groceries", "Supermarket and grocery purchases", "#4CAF50", "shopping-cart"),
    ("Dining", "Restaurants, cafes, and food delivery", "#FF5722", "restaurant"),
    ("Fuel", "Gas stations and fuel purchases", "#9E9E9E", "local-gas-station"),
    ("Shopping", "Retail and online shopping", "#E91E63", "shopping-bag"),
    ("Bills", "Utilities, subscriptions, and regular bills", "#2196F3", "receipt"),
    ("Entertainment", "Movies, streaming, and entertainment", "#9C27B0", "movie"),
    ("Transport", "Rideshare, public transit, and transportation", "#FF9800", "directions-car"),
    ("Healthcare", "Medical, pharmacy, and health expenses", "#00BCD4", "local-hospital"),
    ("Other", "Miscellaneous and uncategorized expenses", "#607D8B", "more-horiz"),
]

DEMO_USERS = [
    ("Demo User 1", "user1@example.com"),
    ("Demo User 2", "user2@example.com"),
]
DEMO_PASSWORD = "demo123"

# (description, amount, merchant, days ago)
SAMPLE_TRANSACTIONS = [
    ("Starbucks Coffee - Morning Latte", 5.75, "Starbucks", 7),
    ("Shell Gas Station - Fuel", 45.20, "Shell", 6),
    ("Amazon.com - Books Purchase", 29.99, "Amazon", 6),
    ("Whole Foods Market - Weekly Groceries", 87.45, "Whole Foods", 5),
    ("Netflix Monthly Subscription", 15.99, "Netflix", 5),
    ("Uber Ride to Downtown", 18.50, "Uber", 4),
    ("Electric Company - Monthly Bill", 125.00, "City Electric", 4),
    ("CVS Pharmacy - Prescription", 12.30, "CVS", 3),
]

# (category id, confidence, influential tokens), one per sample transaction
SAMPLE_PREDICTIONS = [
    (2, 0.96, ["starbucks", "coffee", "latte"]),
    (3, 0.98, ["shell", "gas", "fuel"]),
    (4, 0.94, ["amazon", "books", "purchase"]),
    (1, 0.92, ["whole", "foods", "groceries"]),
    (6, 0.97, ["netflix", "subscription", "monthly"]),
    (7, 0.95, ["uber", "ride", "downtown"]),
    (5, 0.93, ["electric", "bill", "monthly"]),
    (8, 0.89, ["cvs", "pharmacy", "prescription"]),
]

# (sample transaction index, corrected category id, notes)
SAMPLE_FEEDBACK = [
    (2, 6, "Books should be categorized as entertainment"),
    (4, 5, "Monthly subscriptions should be bills"),
]


def seed_categories(db: Session) -> int:
    if db.query(Category).first():
        logger.info("Categories already exist. Skipping seed.")
        return 0
    for name, description, color, icon in DEFAULT_CATEGORIES:
        db.add(Category(name=name, description=description, color_hex=color, icon=icon, user_id=None))
    db.commit()
    return len(DEFAULT_CATEGORIES)


def seed_users(db: Session) -> int:
    if db.query(User).first():
        logger.info("Users already exist. Skipping seed.")
        return 0
    password_hash = hash_password(DEMO_PASSWORD)
    for name, email in DEMO_USERS:
        db.add(User(name=name, email=email, password_hash=password_hash))
    db.commit()
    return len(DEMO_USERS)


def seed_transactions(db: Session) -> int:
    if db.query(Transaction).first():
        logger.info("Transactions already exist. Skipping seed.")
        return 0
    owner = db.query(User).order_by(User.id).first()
    if owner is None:
        return 0
    now = datetime.utcnow()
    for description, amount, merchant, days_ago in SAMPLE_TRANSACTIONS:
        db.add(
            Transaction(
                user_id=owner.id,
                description=description,
                amount=amount,
                merchant_name=merchant,
                transaction_date=now - timedelta(days=days_ago),
            )
        )
    db.commit()
    return len(SAMPLE_TRANSACTIONS)


def _sample_transactions(db: Session, count: int):
    return db.query(Transaction).order_by(Transaction.id).limit(count).all()


def seed_predictions(db: Session) -> int:
    if db.query(Prediction).first():
        logger.info("Predictions already exist. Skipping seed.")
        return 0
    txs = _sample_transactions(db, len(SAMPLE_PREDICTIONS))
    for tx, (category_id, confidence, tokens) in zip(txs, SAMPLE_PREDICTIONS):
        db.add(
            Prediction(
                transaction_id=tx.id,
                category_id=category_id,
                confidence=confidence,
                influential_tokens=tokens,
                model_version="v1.0",
            )
        )
    db.commit()
    return len(txs)


def seed_feedback(db: Session) -> int:
    if db.query(Feedback).first():
        logger.info("Feedback already exists. Skipping seed.")
        return 0
    txs = _sample_transactions(db, len(SAMPLE_TRANSACTIONS))
    created = 0
    for index, corrected_category_id, notes in SAMPLE_FEEDBACK:
        if index >= len(txs):
            continue
        tx = txs[index]
        # first prediction is the current one
        prediction = (
            db.query(Prediction).filter(Prediction.transaction_id == tx.id).order_by(Prediction.id).first()
        )
        db.add(
            Feedback(
                transaction_id=tx.id,
                prediction_id=prediction.id if prediction else None,
                original_category_id=prediction.category_id if prediction else None,
                corrected_category_id=corrected_category_id,
                user_id=tx.user_id,
                notes=notes,
            )
        )
        created += 1
    db.commit()
    return created


def seed_all(db: Session) -> dict:
    return {
        "categories": seed_categories(db),
        "users": seed_users(db),
        "transactions": seed_transactions(db),
        "predictions": seed_predictions(db),
        "feedback": seed_feedback(db),
    }


def main():
    logging.basicConfig(level=logging.INFO)
    init_db()
    db = SessionLocal()
    try:
        counts = seed_all(db)
    finally:
        db.close()
    logger.info("Database seeded: %s", counts)


if __name__ == "__main__":
    main()
