from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Request, Response
from fastapi.responses import RedirectResponse

from dynforms.core.cancellation import cancel_on_disconnect
from dynforms.core.context import AppContext
from dynforms.core.deps import get_context, get_current_username
from dynforms.schemas.forms import FormListRead, FormPageRead

from .service import form_page_service, list_entries_service, submit_form_service

router = APIRouter()

FORM_PATH_PATTERN = r"^[A-Za-z0-9_-]{1,128}$"


def _take_inserted_cookie(request: Request, response: Response, cookie_name: str) -> str:
    inserted = str(request.cookies.get(cookie_name) or "")
    if inserted:
        response.delete_cookie(cookie_name)
    return inserted


@router.get("/{form_path}/list", response_model=FormListRead)
async def list_entries(
    request: Request,
    form_path: str = Path(pattern=FORM_PATH_PATTERN),
    ctx: AppContext = Depends(get_context),
    username: str | None = Depends(get_current_username),
):
    return await cancel_on_disconnect(request, list_entries_service(ctx, form_path, username))


@router.get("/{form_path}/edit/{entry_id}", response_model=FormPageRead)
async def edit_form(
    request: Request,
    response: Response,
    entry_id: int = Path(ge=1),
    form_path: str = Path(pattern=FORM_PATH_PATTERN),
    ctx: AppContext = Depends(get_context),
    username: str | None = Depends(get_current_username),
):
    inserted = _take_inserted_cookie(request, response, ctx.settings.INSERTED_COOKIE_NAME)
    return await cancel_on_disconnect(
        request,
        form_page_service(ctx, form_path, username, entry_id=entry_id, previously_inserted=inserted),
    )


@router.get("/{form_path}", response_model=FormPageRead)
async def get_form(
    request: Request,
    response: Response,
    form_path: str = Path(pattern=FORM_PATH_PATTERN),
    ctx: AppContext = Depends(get_context),
    username: str | None = Depends(get_current_username),
):
    inserted = _take_inserted_cookie(request, response, ctx.settings.INSERTED_COOKIE_NAME)
    return await cancel_on_disconnect(
        request,
        form_page_service(ctx, form_path, username, previously_inserted=inserted),
    )


@router.post("/{form_path}")
async def submit_form(
    request: Request,
    form_path: str = Path(pattern=FORM_PATH_PATTERN),
    ctx: AppContext = Depends(get_context),
    username: str | None = Depends(get_current_username),
):
    form_data = await request.form()
    submitted = {key: form_data.getlist(key) for key in form_data.keys()}
    saved_id = await cancel_on_disconnect(request, submit_form_service(ctx, form_path, username, submitted))
    redirect = RedirectResponse(url=request.url.path, status_code=302)
    redirect.set_cookie(
        ctx.settings.INSERTED_COOKIE_NAME,
        str(saved_id),
        httponly=True,
        samesite="lax",
        secure=ctx.settings.is_production,
    )
    return redirect
