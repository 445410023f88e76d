"""
FastAPI application for the Warden authorization service.

Endpoints:
    GET  /health
    POST /api/realm/{tenant_id}/authz/evaluate
    POST /api/realm/{tenant_id}/authz/explain
    GET  /api/realm/{tenant_id}/accounts/{account_id}/policies
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from warden.auth import AuthContext, Caller, get_caller, get_evaluator, require
from warden.authz.evaluator import PolicyEvaluator
from warden.config import get_settings
from warden.integrations.sentry import capture_exception, init_sentry
from warden.seed_loader import load_seed_file
from warden.storage import StorageProvider, StorageUnavailableError, create_local_storage

logger = logging.getLogger(__name__)


# =============================================================================
# Lifespan
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup app resources."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    init_sentry()

    storage = create_local_storage()
    if settings.seed_file:
        await load_seed_file(storage.grants, settings.seed_file)

    install_storage(app, storage)

    logger.info(f"Warden API starting in {settings.environment} mode")

    yield

    logger.info("Warden API shutting down")


def install_storage(app: FastAPI, storage: StorageProvider) -> None:
    """Wire a storage provider and an evaluator over it into the app."""
    app.state.storage = storage
    app.state.evaluator = PolicyEvaluator(storage.grants)


# =============================================================================
# App Setup
# =============================================================================


app = FastAPI(
    title="Warden API",
    description="Policy evaluation for multi-tenant identity and access management",
    version="0.1.0",
    lifespan=lifespan,
)


# CORS
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StorageUnavailableError)
async def storage_unavailable_handler(request: Request, exc: StorageUnavailableError):
    """A backend outage is not a denial; tell the caller so it can decide."""
    capture_exception(exc, path=request.url.path)
    return JSONResponse(status_code=503, content={"detail": "Policy store unavailable"})


# =============================================================================
# Request/Response Models
# =============================================================================


class EvaluateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tenant_id: str | None = Field(default=None, alias="tenantId")
    account_id: str | None = Field(default=None, alias="accountId")
    action: str
    resource: str


class EvaluateResponse(BaseModel):
    allowed: bool
    error: str | None = None


class AccountPoliciesResponse(BaseModel):
    account_id: str
    policy_ids: list[str]
    count: int


# =============================================================================
# Health Check
# =============================================================================


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "warden-api"}


# =============================================================================
# Evaluation
# =============================================================================


def _subject(tenant_id: str, body: EvaluateRequest, caller: Caller | None) -> str:
    """Which account a request is about: the body's, else the caller's."""
    if body.tenant_id is not None and body.tenant_id != tenant_id:
        raise HTTPException(status_code=400, detail="tenantId does not match the realm in the path")

    account_id = body.account_id or (caller.account_id if caller else None)
    if not account_id:
        raise HTTPException(status_code=401, detail="No account to evaluate")
    return account_id


@app.post(
    "/api/realm/{tenant_id}/authz/evaluate",
    response_model=EvaluateResponse,
    response_model_exclude_none=True,
)
async def evaluate(
    tenant_id: str,
    body: EvaluateRequest,
    caller: Caller | None = Depends(get_caller),
    evaluator: PolicyEvaluator = Depends(get_evaluator),
):
    """
    Evaluate whether an account may perform an action on a resource.

    Always 200 with ``{"allowed": ...}``; ``error`` appears only for a
    malformed action or resource.
    """
    account_id = _subject(tenant_id, body, caller)
    result = await evaluator.evaluate(tenant_id, account_id, body.action, body.resource)

    logger.info(
        f"authz {tenant_id} {account_id} {body.action} {body.resource} -> "
        f"{'allow' if result.allowed else 'deny'}"
    )
    return result.to_response()


@app.post("/api/realm/{tenant_id}/authz/explain")
async def explain(
    tenant_id: str,
    body: EvaluateRequest,
    ctx: AuthContext = Depends(require("iam:authz:explain")),
    evaluator: PolicyEvaluator = Depends(get_evaluator),
):
    """Diagnostic evaluation: which policies were candidates, which fired."""
    account_id = body.account_id or ctx.account_id
    if body.tenant_id is not None and body.tenant_id != tenant_id:
        raise HTTPException(status_code=400, detail="tenantId does not match the realm in the path")

    detail = await evaluator.explain(tenant_id, account_id, body.action, body.resource)
    return detail.to_dict()


# =============================================================================
# Accounts
# =============================================================================


@app.get(
    "/api/realm/{tenant_id}/accounts/{account_id}/policies",
    response_model=AccountPoliciesResponse,
)
async def list_account_policies(
    tenant_id: str,
    account_id: str,
    ctx: AuthContext = Depends(require(
        "iam:accounts:read",
        "grn:global:iam::${tenantId}:accounts/${account_id}",
    )),
    evaluator: PolicyEvaluator = Depends(get_evaluator),
):
    """Every policy granted to an account, through any grant path."""
    policy_ids = await evaluator.resolver.resolve_policies(tenant_id, account_id)
    return AccountPoliciesResponse(
        account_id=account_id,
        policy_ids=sorted(policy_ids),
        count=len(policy_ids),
    )
