from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List

from dynforms.models.form import FieldType

class FieldRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    field_type: FieldType
    required: bool
    label: str
    description: str = ""
    placeholder: str = ""
    options: List[str] = Field(default_factory=list)
    has_options: bool = False
    section_heading: str = ""
    linebreak_after: bool = False
    include_in_summary: bool = False
    is_directory_populated: bool = False

class FormRead(BaseModel):
    path: str
    name: str
    description: str
    table_name: str
    allow_anonymous: bool
    use_directory_fields: bool
    is_admin: bool = False
    fields: List[FieldRead] = Field(default_factory=list)

class FormPageRead(BaseModel):
    form: FormRead
    values: Dict[str, str] = Field(default_factory=dict)
    username: str
    previously_inserted_record: str = ""

class FormListRead(BaseModel):
    form: FormRead
    entries: List[Dict[str, str]] = Field(default_factory=list)
    username: str
