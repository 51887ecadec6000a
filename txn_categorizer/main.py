"""FastAPI service for transaction categorization.

Run (dev): uvicorn txn_categorizer.main:app --reload --port 8000
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Path, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from . import advisor
from . import repository as repos
from .classifier import TransactionClassifier
from .config import get_settings
from .database import Category, Feedback, Prediction, Transaction, User, get_db, init_db
from .errors import BadRequestError, register_error_handlers
from .evaluation import build_metrics_report
from .models import (
    CategoryCreate,
    CategoryOut,
    CategoryUpdate,
    ExplainRequest,
    ExplainResponse,
    FeedbackCreate,
    FeedbackOut,
    FeedbackUpdate,
    PredictBatchRequest,
    PredictionCreate,
    PredictionOut,
    PredictionUpdate,
    PredictRequest,
    PredictResponse,
    TaxonomyUpdate,
    TransactionBulkCreate,
    TransactionBulkOut,
    TransactionCreate,
    TransactionOut,
    TransactionUpdate,
    UserCreate,
    UserOut,
    UserUpdate,
)
from .security import hash_password
from .taxonomy import TaxonomyStore

settings = get_settings()

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger("txn_categorizer.api")

init_db()

app = FastAPI(title="Transaction Categorizer API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_error_handlers(app)


@app.middleware("http")
async def allow_all_routes(request: Request, call_next):
    # No authentication checks - all routes are public
    logger.debug("%s %s", request.method, request.url.path)
    return await call_next(request)


_classifier = TransactionClassifier(fuzzy_threshold=settings.fuzzy_threshold)


def get_classifier() -> TransactionClassifier:
    return _classifier


def _present(values: Dict[str, Any], *keys: str) -> Dict[str, Any]:
    """Drop keys whose value is None so column defaults apply."""
    return {k: v for k, v in values.items() if not (k in keys and v is None)}


# --- ROUTES ---


@app.get("/health")
def health_check():
    return {"status": "ok"}


# Users


@app.get("/api/users", response_model=List[UserOut])
def list_users(
    limit: Optional[int] = None,
    offset: int = 0,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
):
    filters = []
    if search:
        pattern = f"%{search}%"
        filters.append(or_(User.name.like(pattern), User.email.like(pattern)))
    return repos.users.list(db, filters, limit, offset)


@app.get("/api/users/{user_id}", response_model=UserOut)
def get_user(user_id: int = Path(..., gt=0), db: Session = Depends(get_db)):
    return repos.users.get(db, user_id)


@app.post("/api/users", response_model=UserOut, status_code=201)
def create_user(user: UserCreate, db: Session = Depends(get_db)):
    return repos.users.create(
        db,
        {"email": user.email, "name": user.name, "password_hash": hash_password(user.password)},
    )


@app.patch("/api/users/{user_id}", response_model=UserOut)
def update_user(user: UserUpdate, user_id: int = Path(..., gt=0), db: Session = Depends(get_db)):
    updates = user.model_dump(exclude_unset=True)
    if "password" in updates:
        updates["password_hash"] = hash_password(updates.pop("password"))
    return repos.users.update(db, user_id, updates)


@app.delete("/api/users/{user_id}")
def delete_user(user_id: int = Path(..., gt=0), db: Session = Depends(get_db)):
    return repos.users.delete(db, user_id)


# Categories


@app.get("/api/categories", response_model=List[CategoryOut])
def list_categories(
    limit: Optional[int] = None,
    offset: int = 0,
    user_id: Optional[int] = None,
    include_defaults: bool = False,
    db: Session = Depends(get_db),
):
    filters = []
    if user_id is not None:
        if include_defaults:
            filters.append(or_(Category.user_id == user_id, Category.user_id.is_(None)))
        else:
            filters.append(Category.user_id == user_id)
    return repos.categories.list(db, filters, limit, offset)


@app.get("/api/categories/{category_id}", response_model=CategoryOut)
def get_category(category_id: int = Path(..., gt=0), db: Session = Depends(get_db)):
    return repos.categories.get(db, category_id)


@app.post("/api/categories", response_model=CategoryOut, status_code=201)
def create_category(category: CategoryCreate, db: Session = Depends(get_db)):
    return repos.categories.create(db, category.model_dump())


@app.patch("/api/categories/{category_id}", response_model=CategoryOut)
def update_category(category: CategoryUpdate, category_id: int = Path(..., gt=0), db: Session = Depends(get_db)):
    return repos.categories.update(db, category_id, category.model_dump(exclude_unset=True))


@app.delete("/api/categories/{category_id}")
def delete_category(category_id: int = Path(..., gt=0), db: Session = Depends(get_db)):
    return repos.categories.delete(db, category_id)


# Transactions


@app.get("/api/transactions", response_model=List[TransactionOut])
def list_transactions(
    limit: Optional[int] = None,
    offset: int = 0,
    user_id: Optional[int] = None,
    search: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
):
    filters = []
    if user_id is not None:
        filters.append(Transaction.user_id == user_id)
    if search:
        pattern = f"%{search}%"
        filters.append(or_(Transaction.description.like(pattern), Transaction.merchant_name.like(pattern)))
    if start_date:
        filters.append(Transaction.transaction_date >= start_date)
    if end_date:
        filters.append(Transaction.transaction_date <= end_date)
    return repos.transactions.list(db, filters, limit, offset)


@app.post("/api/transactions/bulk", response_model=TransactionBulkOut, status_code=201)
def bulk_create_transactions(payload: TransactionBulkCreate, db: Session = Depends(get_db)):
    rows = [_present(t.model_dump(), "transaction_date") for t in payload.transactions]
    created = repos.transactions.create_many(db, rows)
    logger.info("Bulk inserted %d transactions", len(created))
    return {"success": True, "count": len(created), "transactions": created}


@app.get("/api/transactions/{transaction_id}", response_model=TransactionOut)
def get_transaction(transaction_id: int = Path(..., gt=0), db: Session = Depends(get_db)):
    return repos.transactions.get(db, transaction_id)


@app.post("/api/transactions", response_model=TransactionOut, status_code=201)
def create_transaction(transaction: TransactionCreate, db: Session = Depends(get_db)):
    if repos.users.find(db, transaction.user_id) is None:
        raise BadRequestError("User with specified user_id does not exist", "USER_NOT_FOUND")
    return repos.transactions.create(db, _present(transaction.model_dump(), "transaction_date"))


@app.patch("/api/transactions/{transaction_id}", response_model=TransactionOut)
def update_transaction(
    transaction: TransactionUpdate,
    transaction_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
):
    return repos.transactions.update(db, transaction_id, transaction.model_dump(exclude_unset=True))


@app.delete("/api/transactions/{transaction_id}")
def delete_transaction(transaction_id: int = Path(..., gt=0), db: Session = Depends(get_db)):
    return repos.transactions.delete(db, transaction_id)


@app.post("/api/transactions/{transaction_id}/predict", response_model=PredictionOut, status_code=201)
def predict_stored_transaction(
    transaction_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    classifier: TransactionClassifier = Depends(get_classifier),
):
    tx = repos.transactions.get(db, transaction_id)
    result = classifier.predict(tx.description, tx.amount, tx.merchant_name)
    return repos.predictions.create(
        db,
        {
            "transaction_id": tx.id,
            "category_id": result.category_id,
            "confidence": result.confidence,
            "influential_tokens": result.influential_tokens,
            "model_version": settings.model_version,
        },
    )


# Predictions


@app.get("/api/predictions", response_model=List[PredictionOut])
def list_predictions(
    limit: Optional[int] = None,
    offset: int = 0,
    transaction_id: Optional[int] = None,
    category_id: Optional[int] = None,
    min_confidence: Optional[float] = Query(None, ge=0, le=1),
    db: Session = Depends(get_db),
):
    filters = []
    if transaction_id is not None:
        filters.append(Prediction.transaction_id == transaction_id)
    if category_id is not None:
        filters.append(Prediction.category_id == category_id)
    if min_confidence is not None:
        filters.append(Prediction.confidence >= min_confidence)
    return repos.predictions.list(db, filters, limit, offset)


@app.get("/api/predictions/{prediction_id}", response_model=PredictionOut)
def get_prediction(prediction_id: int = Path(..., gt=0), db: Session = Depends(get_db)):
    return repos.predictions.get(db, prediction_id)


@app.post("/api/predictions", response_model=PredictionOut, status_code=201)
def create_prediction(prediction: PredictionCreate, db: Session = Depends(get_db)):
    values = prediction.model_dump()
    values["model_version"] = values["model_version"] or "v1.0"
    return repos.predictions.create(db, values)


@app.patch("/api/predictions/{prediction_id}", response_model=PredictionOut)
def update_prediction(
    prediction: PredictionUpdate,
    prediction_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
):
    return repos.predictions.update(db, prediction_id, prediction.model_dump(exclude_unset=True))


@app.delete("/api/predictions/{prediction_id}")
def delete_prediction(prediction_id: int = Path(..., gt=0), db: Session = Depends(get_db)):
    return repos.predictions.delete(db, prediction_id)


# Feedback


@app.get("/api/feedback", response_model=List[FeedbackOut])
def list_feedback(
    limit: Optional[int] = None,
    offset: int = 0,
    user_id: Optional[int] = None,
    transaction_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    filters = []
    if user_id is not None:
        filters.append(Feedback.user_id == user_id)
    if transaction_id is not None:
        filters.append(Feedback.transaction_id == transaction_id)
    return repos.feedback.list(db, filters, limit, offset)


@app.get("/api/feedback/{feedback_id}", response_model=FeedbackOut)
def get_feedback(feedback_id: int = Path(..., gt=0), db: Session = Depends(get_db)):
    return repos.feedback.get(db, feedback_id)


@app.post("/api/feedback", response_model=FeedbackOut, status_code=201)
def create_feedback(entry: FeedbackCreate, db: Session = Depends(get_db)):
    return repos.feedback.create(db, entry.model_dump())


@app.patch("/api/feedback/{feedback_id}", response_model=FeedbackOut)
def update_feedback(entry: FeedbackUpdate, feedback_id: int = Path(..., gt=0), db: Session = Depends(get_db)):
    return repos.feedback.update(db, feedback_id, entry.model_dump(exclude_unset=True))


@app.delete("/api/feedback/{feedback_id}")
def delete_feedback(feedback_id: int = Path(..., gt=0), db: Session = Depends(get_db)):
    return repos.feedback.delete(db, feedback_id)


# Classification


@app.post("/api/predict", response_model=PredictResponse)
def predict(req: PredictRequest, classifier: TransactionClassifier = Depends(get_classifier)):
    result = classifier.predict(req.transaction, req.amount, req.merchant_name)
    return result.as_dict()


@app.post("/api/predict/batch")
def predict_batch(req: PredictBatchRequest, classifier: TransactionClassifier = Depends(get_classifier)):
    return {"results": classifier.predict_many(req.texts)}


@app.post("/api/explain", response_model=ExplainResponse)
def explain(req: ExplainRequest, classifier: TransactionClassifier = Depends(get_classifier)):
    if not req.transaction:
        raise BadRequestError("Transaction description is required", "MISSING_TRANSACTION")
    explanation = classifier.explain(req.transaction)
    narrative = advisor.get_ai_rationale(explanation.transaction, explanation.category, explanation.influences)
    return {
        "transaction": explanation.transaction,
        "category": explanation.category,
        "confidence": explanation.confidence,
        "influences": explanation.influences,
        "narrative": narrative,
    }


@app.get("/api/metrics")
def metrics(db: Session = Depends(get_db)):
    feedback_count = db.query(func.count(Feedback.id)).scalar() or 0
    return build_metrics_report(feedback_count)


# Taxonomy


@app.get("/api/taxonomy")
def get_taxonomy(db: Session = Depends(get_db)):
    return TaxonomyStore(db).get()


@app.post("/api/taxonomy")
def update_taxonomy(req: TaxonomyUpdate, db: Session = Depends(get_db)):
    taxonomy = TaxonomyStore(db).set(req.categories)
    return {"success": True, "taxonomy": taxonomy}


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run("txn_categorizer.main:app", host="0.0.0.0", port=8000, reload=True)
