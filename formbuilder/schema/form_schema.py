from pydantic import BaseModel, ConfigDict
from typing import Any, Dict, List, Optional


class FormField(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    name: Optional[str] = None
    type: Optional[str] = None
    label: Optional[str] = None
    required: bool = False
    validation: Optional[Dict[str, Any]] = None
    options: Optional[List[Any]] = None


class FormCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    fields: Optional[List[FormField]] = None
    isActive: bool = True
    allowEditing: bool = True
    settings: Dict[str, Any] = {}
    customUrl: Optional[str] = None


class FormUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    fields: Optional[List[FormField]] = None
    isActive: Optional[bool] = None
    allowEditing: Optional[bool] = None
    settings: Optional[Dict[str, Any]] = None
    customUrl: Optional[str] = None
