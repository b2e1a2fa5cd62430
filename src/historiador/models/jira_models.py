"""Decoded Jira REST API payloads."""

from typing import Any, Optional
from pydantic import BaseModel, Field


class JiraIssueType(BaseModel):
    """Entry of /rest/api/3/issuetype or of a createmeta project."""

    id: str = ""
    name: str
    description: str = ""
    subtask: bool = False


class JiraCreatedIssue(BaseModel):
    """Response body of POST /rest/api/3/issue."""

    id: str
    key: str
    self_url: str = Field("", alias="self")

    class Config:
        """Pydantic config."""
        populate_by_name = True


class JiraErrorResponse(BaseModel):
    """Error body returned by Jira on 4xx responses."""

    error_messages: list[str] = Field(default_factory=list, alias="errorMessages")
    errors: dict[str, str] = Field(default_factory=dict)
    warning_messages: list[str] = Field(default_factory=list, alias="warningMessages")

    class Config:
        """Pydantic config."""
        populate_by_name = True

    def joined(self) -> str:
        """Messages first, then one 'field: message' entry per field error."""
        parts = list(self.error_messages)
        parts.extend(f"{name}: {msg}" for name, msg in self.errors.items())
        return "; ".join(parts)


class JiraSearchIssue(BaseModel):
    """Issue entry of a /rest/api/3/search response."""

    key: str
    fields: dict[str, Any] = Field(default_factory=dict)

    @property
    def summary(self) -> Optional[str]:
        value = self.fields.get("summary")
        return value if isinstance(value, str) else None


class JiraSearchResponse(BaseModel):
    issues: list[JiraSearchIssue] = Field(default_factory=list)
    total: int = 0


class CreateMetaAllowedValue(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    value: Optional[str] = None


class CreateMetaField(BaseModel):
    """Field description inside createmeta (expand=projects.issuetypes.fields)."""

    name: str = ""
    required: bool = False
    allowed_values: list[CreateMetaAllowedValue] = Field(default_factory=list, alias="allowedValues")

    class Config:
        """Pydantic config."""
        populate_by_name = True


class CreateMetaIssueType(JiraIssueType):
    fields: dict[str, CreateMetaField] = Field(default_factory=dict)


class CreateMetaProject(BaseModel):
    key: str = ""
    name: str = ""
    issuetypes: list[CreateMetaIssueType] = Field(default_factory=list)


class CreateMeta(BaseModel):
    """Response of GET /rest/api/3/issue/createmeta."""

    projects: list[CreateMetaProject] = Field(default_factory=list)

    def issue_types(self) -> list[CreateMetaIssueType]:
        """Issue types of the first project; empty when no project was returned."""
        if not self.projects:
            return []
        return self.projects[0].issuetypes

    def find_issue_type(self, name: str) -> Optional[CreateMetaIssueType]:
        for issue_type in self.issue_types():
            if issue_type.name == name:
                return issue_type
        return None
