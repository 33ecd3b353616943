from __future__ import annotations


class FormsError(Exception):
    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def is_client_error(self) -> bool:
        return self.status_code < 500

    def detail(self) -> str:
        if self.is_client_error:
            return self.message
        return self.public_message


class NotFound(FormsError):
    status_code = 404

    def __init__(self, form_path: str):
        super().__init__(f"no form with path {form_path}")
        self.form_path = form_path


class EntryNotFound(NotFound):
    def __init__(self, form_path: str, entry_id: int | str):
        FormsError.__init__(self, f"unable to find record {entry_id} in form {form_path}")
        self.form_path = form_path
        self.entry_id = entry_id


class Unauthorized(FormsError):
    status_code = 401

    def __init__(self, message: str = "unable to determine logged in user"):
        super().__init__(message)


class SchemaQueryFailed(FormsError):
    public_message = "Unable to read form schema"


class InvalidIdentifier(SchemaQueryFailed):
    def __init__(self, kind: str, name: str):
        super().__init__(f"refusing to use {kind} name {name!r} in a statement")
        self.kind = kind
        self.name = name


class MetadataQueryFailed(FormsError):
    public_message = "Unable to read form field metadata"

    def __init__(self, labels_table: str):
        super().__init__(f"query error, does the table {labels_table} exist?")
        self.labels_table = labels_table


class ParseFailed(FormsError):
    status_code = 400

    def __init__(self, field: str, raw: str, kind: str = "value"):
        super().__init__(f"unable to parse as {kind} {field}: {raw}")
        self.field = field
        self.raw = raw
        self.kind = kind


class DirectoryLookupFailed(FormsError):
    public_message = "Unable to read directory details for the current user"


class PersistenceFailed(FormsError):
    public_message = "Unable to save or load form data"
