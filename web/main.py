"""FastAPI view layer for the Tokay client"""

from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import quote

from fastapi import Depends, FastAPI, Form, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from jinja2 import Environment, FileSystemLoader, select_autoescape
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from tokay.app import TokayApp
from tokay.models.result import ErrorKind
from tokay.models.user import Identity, RegistrationData
from tokay.utils.exceptions import ApiError, InvalidCredentials, SessionExpired
from tokay.utils.logger import get_logger

from .auth_deps import LoginRequired, get_tokay, require_session, wants_html

logger = get_logger(__name__)

# Templates
templates_path = Path(__file__).parent / "templates"
jinja_env = Environment(
    loader=FileSystemLoader(templates_path),
    autoescape=select_autoescape(["html"]),
)


def _render_template_sync(template_name: str, context: dict) -> str:
    """Sync Jinja2 render (used from threadpool to avoid blocking event loop)."""
    template = jinja_env.get_template(template_name)
    return template.render(**context)


async def render_template_async(template_name: str, context: dict) -> str:
    """Render Jinja2 template in threadpool so the event loop is not blocked."""
    return await run_in_threadpool(_render_template_sync, template_name, context)


class ContributionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    amount: float = Field(gt=0)
    payment_method: str = Field(alias="paymentMethod")
    description: str = "Emergency fund contribution"


def _error_status(error: ApiError) -> int:
    if isinstance(error, InvalidCredentials):
        return 401
    if error.status_code and 400 <= error.status_code < 500:
        return error.status_code
    return 503 if error.status_code is None else 502


def _safe_next(next_url: Optional[str], default: str) -> str:
    # only same-site relative paths
    if next_url and next_url.startswith("/") and not next_url.startswith("//"):
        return next_url
    return default


def _poll_status(poller) -> Dict[str, Any]:
    return {
        "transactionId": poller.transaction_id,
        "outcome": poller.outcome.value,
        "status": poller.last_status,
        "attempts": poller.attempts,
    }


def create_app(tokay: Optional[TokayApp] = None) -> FastAPI:
    """Build the FastAPI app around a single TokayApp instance"""
    tokay = tokay or TokayApp()

    app = FastAPI(
        title="Tokay",
        description="Tokay resilience platform client",
        version="1.0.0",
    )
    app.state.tokay = tokay

    async def page(request: Request, template_name: str, status_code: int = 200, **context) -> HTMLResponse:
        session = get_tokay(request).session_manager
        context.setdefault("identity", session.identity)
        context["notices"] = session.notices.drain()
        context["request"] = request
        content = await render_template_async(template_name, context)
        return HTMLResponse(content=content, status_code=status_code)

    def home_path() -> str:
        return tokay.settings.web.home_path

    def login_path() -> str:
        return tokay.settings.web.login_path

    @app.on_event("startup")
    async def startup_event():
        """Boot the session before the first request is served"""
        try:
            await run_in_threadpool(tokay.start)
        except Exception as e:
            logger.exception("Critical error during startup", error=str(e))
            raise

    @app.on_event("shutdown")
    async def shutdown_event():
        await run_in_threadpool(tokay.shutdown)

    @app.exception_handler(LoginRequired)
    async def login_required_handler(request: Request, exc: LoginRequired):
        return RedirectResponse(exc.redirect_url, status_code=302)

    @app.exception_handler(SessionExpired)
    async def session_expired_handler(request: Request, exc: SessionExpired):
        target = get_tokay(request).session_manager.consume_redirect() or login_path()
        if wants_html(request):
            return RedirectResponse(target, status_code=302)
        return JSONResponse(status_code=401, content={"detail": exc.message})

    @app.get("/")
    async def index():
        return RedirectResponse(home_path(), status_code=302)

    @app.get("/login", response_class=HTMLResponse)
    async def login_page(request: Request, next: Optional[str] = None):
        if get_tokay(request).session_manager.is_authenticated:
            return RedirectResponse(_safe_next(next, home_path()), status_code=302)
        return await page(request, "login.html", next=next or "")

    @app.post("/login")
    async def login_submit(
        request: Request,
        phone_number: str = Form(...),
        password: str = Form(""),
        next: str = Form(""),
    ):
        session = get_tokay(request).session_manager
        try:
            await run_in_threadpool(session.login, phone_number, password)
        except ApiError as e:
            return await page(
                request,
                "login.html",
                status_code=_error_status(e),
                error=e.message,
                next=next,
                phone_number=phone_number,
            )
        return RedirectResponse(_safe_next(next, home_path()), status_code=303)

    @app.get("/register", response_class=HTMLResponse)
    async def register_page(request: Request):
        return await page(request, "register.html")

    @app.post("/register")
    async def register_submit(
        request: Request,
        phone_number: str = Form(...),
        full_name: str = Form(""),
        email: str = Form(""),
        password: str = Form(""),
        preferred_language: str = Form("ms"),
    ):
        session = get_tokay(request).session_manager
        form = {"phone_number": phone_number, "full_name": full_name, "email": email}
        try:
            data = RegistrationData(
                phone_number=phone_number.strip(),
                full_name=full_name.strip() or None,
                email=email.strip() or None,
                password=password or None,
                preferred_language=preferred_language or "ms",
            )
        except ValidationError:
            return await page(request, "register.html", status_code=400, error="Phone number is required.", form=form)
        try:
            await run_in_threadpool(session.register, data)
        except ApiError as e:
            return await page(request, "register.html", status_code=_error_status(e), error=e.message, form=form)
        return RedirectResponse("/verify-phone", status_code=303)

    @app.get("/verify-phone", response_class=HTMLResponse)
    async def verify_page(request: Request, phone_number: Optional[str] = None):
        session = get_tokay(request).session_manager
        pending = session.pending_verification
        phone = phone_number or (pending.phone_number if pending else None)
        if not phone:
            return RedirectResponse("/register", status_code=302)
        return await page(request, "verify_phone.html", phone_number=phone)

    @app.post("/verify-phone")
    async def verify_submit(
        request: Request,
        phone_number: str = Form(...),
        verification_code: str = Form(...),
    ):
        session = get_tokay(request).session_manager
        try:
            await run_in_threadpool(session.verify_phone, phone_number, verification_code)
        except ApiError as e:
            return await page(
                request,
                "verify_phone.html",
                status_code=_error_status(e),
                error=e.message,
                phone_number=phone_number,
            )
        return RedirectResponse(home_path(), status_code=303)

    @app.post("/verify-phone/resend")
    async def verify_resend(request: Request, phone_number: str = Form(...)):
        session = get_tokay(request).session_manager
        try:
            await run_in_threadpool(session.resend_verification, phone_number)
        except ApiError as e:
            return await page(
                request,
                "verify_phone.html",
                status_code=_error_status(e),
                error=e.message,
                phone_number=phone_number,
            )
        return RedirectResponse(f"/verify-phone?phone_number={quote(phone_number)}", status_code=303)

    @app.post("/verify-phone/cancel")
    async def verify_cancel(request: Request):
        get_tokay(request).session_manager.cancel_verification()
        return RedirectResponse("/register", status_code=303)

    @app.post("/logout")
    async def logout(request: Request):
        get_tokay(request).session_manager.logout()
        return RedirectResponse(login_path(), status_code=303)

    @app.get("/dashboard", response_class=HTMLResponse)
    async def dashboard(request: Request, identity: Identity = Depends(require_session)):
        tokay_app = get_tokay(request)
        fund = await run_in_threadpool(tokay_app.resources.get_emergency_fund)
        if fund.kind == ErrorKind.SESSION_EXPIRED:
            raise SessionExpired(fund.message)
        return await page(request, "dashboard.html", identity=identity, fund=fund)

    @app.post("/account/password")
    async def set_password(
        request: Request,
        password: str = Form(...),
        identity: Identity = Depends(require_session),
    ):
        session = get_tokay(request).session_manager
        try:
            await run_in_threadpool(session.set_password, password)
        except SessionExpired:
            raise
        except ApiError as e:
            return await page(
                request,
                "dashboard.html",
                status_code=_error_status(e),
                identity=identity,
                password_error=e.message,
            )
        return RedirectResponse(home_path(), status_code=303)

    @app.get("/api/session")
    async def session_snapshot(request: Request):
        session = get_tokay(request).session_manager
        snapshot = session.snapshot()
        snapshot["booted"] = session.is_booted
        return snapshot

    @app.get("/api/notices")
    async def drain_notices(request: Request):
        notices = get_tokay(request).session_manager.notices.drain()
        return [n.model_dump(mode="json") for n in notices]

    @app.post("/emergency-fund/contributions")
    async def start_contribution(
        request: Request,
        body: ContributionRequest,
        identity: Identity = Depends(require_session),
    ):
        tokay_app = get_tokay(request)
        result = await run_in_threadpool(
            tokay_app.resources.initiate_mock_payment,
            body.amount,
            body.payment_method,
            body.description,
        )
        if not result.ok:
            if result.kind == ErrorKind.SESSION_EXPIRED:
                raise SessionExpired(result.message)
            return JSONResponse(
                status_code=result.status_code or 503,
                content={"kind": result.kind.value, "message": result.message},
            )
        data = result.value if isinstance(result.value, dict) else {}
        transaction_id = data.get("transactionId")
        if not transaction_id:
            return JSONResponse(status_code=502, content={"message": "Payment was not initiated"})
        poller = tokay_app.start_payment_poll(str(transaction_id))
        logger.info("Contribution payment started", user_id=identity.id, transaction_id=transaction_id)
        return JSONResponse(
            status_code=202,
            content={**_poll_status(poller), "redirectUrl": data.get("redirectUrl")},
        )

    @app.get("/emergency-fund/contributions/{transaction_id}")
    async def contribution_status(
        request: Request,
        transaction_id: str,
        identity: Identity = Depends(require_session),
    ):
        poller = get_tokay(request).get_payment_poll(transaction_id)
        if not poller:
            raise HTTPException(status_code=404, detail="Unknown transaction")
        return _poll_status(poller)

    @app.delete("/emergency-fund/contributions/{transaction_id}")
    async def cancel_contribution(
        request: Request,
        transaction_id: str,
        identity: Identity = Depends(require_session),
    ):
        poller = get_tokay(request).get_payment_poll(transaction_id)
        if not poller:
            raise HTTPException(status_code=404, detail="Unknown transaction")
        poller.cancel()
        await run_in_threadpool(poller.join, 2.0)
        return _poll_status(poller)

    return app


app = create_app()
