from __future__ import annotations

from typing import Any, Mapping

from dynforms.core.context import AppContext
from dynforms.models.form import Form
from dynforms.schemas.forms import FieldRead, FormListRead, FormPageRead, FormRead
from dynforms.services.authorization import Caller, classify_caller
from dynforms.services.form_loader import load_form_fields, load_form_record
from dynforms.services.submissions import load_entries, load_entry, save_submission


def _form_read(form: Form, caller: Caller) -> FormRead:
    return FormRead(
        path=form.path,
        name=form.name,
        description=form.description,
        table_name=form.table_name,
        allow_anonymous=form.allow_anonymous,
        use_directory_fields=form.use_directory_fields,
        is_admin=caller.is_admin,
        fields=[FieldRead.model_validate(fld) for fld in form.fields],
    )


async def _authorized_form(ctx: AppContext, form_path: str, username: str | None) -> tuple[Form, Caller]:
    # Classify before introspecting: a rejected caller costs one registry lookup.
    form = await load_form_record(ctx, form_path)
    caller = classify_caller(username, form, anonymous_username=ctx.settings.ANONYMOUS_USERNAME)
    await load_form_fields(ctx, form)
    return form, caller


async def form_page_service(
    ctx: AppContext,
    form_path: str,
    username: str | None,
    *,
    entry_id: int | None = None,
    previously_inserted: str = "",
) -> FormPageRead:
    form, caller = await _authorized_form(ctx, form_path, username)
    values: dict[str, str] = {}
    if entry_id is not None and entry_id > 0:
        values = await load_entry(ctx, form, caller, entry_id)
        values["id"] = str(entry_id)
    return FormPageRead(
        form=_form_read(form, caller),
        values=values,
        username=caller.username,
        previously_inserted_record=previously_inserted,
    )


async def submit_form_service(
    ctx: AppContext,
    form_path: str,
    username: str | None,
    submitted: Mapping[str, Any],
) -> int:
    form, caller = await _authorized_form(ctx, form_path, username)
    return await save_submission(ctx, form, caller, submitted)


async def list_entries_service(ctx: AppContext, form_path: str, username: str | None) -> FormListRead:
    form, caller = await _authorized_form(ctx, form_path, username)
    entries = await load_entries(ctx, form, caller)
    return FormListRead(form=_form_read(form, caller), entries=entries, username=caller.username)
