"""FastAPI application for the finance tracker backend."""

import logging

from fastapi import Depends, FastAPI, File, Header, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.config import settings
from backend.db.sqlite import db
from backend.errors import ApiError
from backend.models import (
    ApiResponse,
    Budget,
    BudgetCreate,
    BudgetUpdate,
    Category,
    CategoryCreate,
    CategoryUpdate,
    ConfirmImportRequest,
    ConfirmImportResult,
    ImportPreview,
    Transaction,
    TransactionCreate,
    TransactionUpdate,
)
from backend.services import budgets, categories, transactions
from backend.services.bank_import import process_statement, save_transactions

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Finance Tracker",
    description="Personal finance tracker with AI-assisted bank statement import",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup():
    """Initialize on startup."""
    settings.ensure_directories()
    if settings.dev_mode:
        settings.log_config()


# ==================== ERROR HANDLERS ====================
# Every failure uses the same {"success": false, "error": ...} body.


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    """Return service failures as JSON with the error's status code."""
    logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report request validation failures field by field."""
    errors = [
        {"field": ".".join(str(part) for part in err["loc"][1:]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=422, content={"success": False, "error": "Validation failed", "errors": errors})


async def get_owner_id(x_user_id: str | None = Header(default=None)) -> str:
    """Resolve the requesting user from the header set by the auth provider."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    return x_user_id


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "transaction_count": db.get_transaction_count()}


# ==================== IMPORT ENDPOINTS ====================


@app.post("/api/import/preview", response_model=ApiResponse[ImportPreview])
async def preview_import(
    statement: UploadFile | None = File(default=None),
    owner_id: str = Depends(get_owner_id),
):
    """Extract, categorize and duplicate-check transactions from a bank statement."""
    if statement is None:
        raise HTTPException(status_code=400, detail="No file uploaded. Please upload a PDF or CSV file.")

    # One byte over the limit is enough to know the file is too large
    contents = await statement.read(settings.max_upload_bytes + 1)
    if not contents:
        raise HTTPException(status_code=400, detail="Empty file")
    if len(contents) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {settings.max_upload_bytes // (1024 * 1024)} MB.",
        )

    preview = await process_statement(contents, statement.content_type or "", owner_id)
    return ApiResponse[ImportPreview](data=preview, message="Transactions extracted successfully")


@app.post("/api/import/confirm", response_model=ApiResponse[ConfirmImportResult])
async def confirm_import(request: ConfirmImportRequest, owner_id: str = Depends(get_owner_id)):
    """Save the transactions the user approved from a preview."""
    result = save_transactions(request.transactions, owner_id)
    return ApiResponse[ConfirmImportResult](
        data=result,
        message=f"Successfully imported {result.count} transactions",
    )


# ==================== CATEGORY ENDPOINTS ====================


@app.get("/api/categories", response_model=ApiResponse[list[Category]])
async def list_categories(owner_id: str = Depends(get_owner_id)):
    """Get the user's categories."""
    return ApiResponse[list[Category]](data=db.find_categories_by_owner(owner_id))


@app.post("/api/categories", response_model=ApiResponse[Category], status_code=201)
async def create_category(category: CategoryCreate, owner_id: str = Depends(get_owner_id)):
    """Create a category."""
    created = categories.create_category(owner_id, category)
    return ApiResponse[Category](data=created, message="Category created")


@app.put("/api/categories/{category_id}", response_model=ApiResponse[Category])
async def update_category(category_id: str, category: CategoryUpdate, owner_id: str = Depends(get_owner_id)):
    """Rename a category."""
    updated = categories.update_category(owner_id, category_id, category)
    return ApiResponse[Category](data=updated, message="Category updated")


@app.delete("/api/categories/{category_id}", response_model=ApiResponse[None])
async def delete_category(category_id: str, owner_id: str = Depends(get_owner_id)):
    """Delete a category; its transactions become uncategorized."""
    categories.delete_category(owner_id, category_id)
    return ApiResponse[None](data=None, message="Category deleted successfully")


# ==================== TRANSACTION ENDPOINTS ====================


@app.get("/api/transactions", response_model=ApiResponse[list[Transaction]])
async def list_transactions(limit: int = 100, owner_id: str = Depends(get_owner_id)):
    """Get the user's transactions, newest first."""
    return ApiResponse[list[Transaction]](data=db.get_transactions(owner_id, limit=limit))


@app.get("/api/transactions/{transaction_id}", response_model=ApiResponse[Transaction])
async def get_transaction(transaction_id: str, owner_id: str = Depends(get_owner_id)):
    return ApiResponse[Transaction](data=transactions.get_transaction(owner_id, transaction_id))


@app.post("/api/transactions", response_model=ApiResponse[Transaction], status_code=201)
async def create_transaction(transaction: TransactionCreate, owner_id: str = Depends(get_owner_id)):
    """Add a transaction by hand."""
    created = transactions.create_transaction(owner_id, transaction)
    return ApiResponse[Transaction](data=created, message="Transaction created")


@app.put("/api/transactions/{transaction_id}", response_model=ApiResponse[Transaction])
async def update_transaction(
    transaction_id: str, transaction: TransactionUpdate, owner_id: str = Depends(get_owner_id)
):
    """Edit a transaction, e.g. to fix an import mistake or recategorize it."""
    updated = transactions.update_transaction(owner_id, transaction_id, transaction)
    return ApiResponse[Transaction](data=updated, message="Transaction updated")


@app.delete("/api/transactions/{transaction_id}", response_model=ApiResponse[None])
async def delete_transaction(transaction_id: str, owner_id: str = Depends(get_owner_id)):
    transactions.delete_transaction(owner_id, transaction_id)
    return ApiResponse[None](data=None, message="Transaction deleted successfully")


# ==================== BUDGET ENDPOINTS ====================


@app.get("/api/budgets", response_model=ApiResponse[list[Budget]])
async def list_budgets(owner_id: str = Depends(get_owner_id)):
    """Get the user's budgets, newest first."""
    return ApiResponse[list[Budget]](data=budgets.list_budgets(owner_id))


@app.post("/api/budgets", response_model=ApiResponse[Budget], status_code=201)
async def create_budget(budget: BudgetCreate, owner_id: str = Depends(get_owner_id)):
    """Create a budget. Dates default to the current month."""
    created = budgets.create_budget(owner_id, budget)
    return ApiResponse[Budget](data=created, message="Budget created")


@app.put("/api/budgets/{budget_id}", response_model=ApiResponse[Budget])
async def update_budget(budget_id: str, budget: BudgetUpdate, owner_id: str = Depends(get_owner_id)):
    updated = budgets.update_budget(owner_id, budget_id, budget)
    return ApiResponse[Budget](data=updated, message="Budget updated")


@app.delete("/api/budgets/{budget_id}", response_model=ApiResponse[None])
async def delete_budget(budget_id: str, owner_id: str = Depends(get_owner_id)):
    budgets.delete_budget(owner_id, budget_id)
    return ApiResponse[None](data=None, message="Budget deleted successfully")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "backend.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.dev_mode,
    )
