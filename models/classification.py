"""
Classification result models.

The classifier returns one variant per entity type, so the type-specific
payload (projectData, personData, ...) always matches `type`. CLARIFY carries
a question for the user instead of metadata.
"""

from pydantic import BaseModel, Field, TypeAdapter, model_validator
from typing import Optional, Union, Literal, Annotated
from models.entity import ProjectMetadata, PersonMetadata, IdeaMetadata, AdminMetadata


class _ClassificationBase(BaseModel):
    title: str
    summary: str = ""
    intent: str = ""
    confidence: float = Field(ge=0.0, le=1.0)
    status: str = "Active"
    reasoning: str = ""
    routing_strategy: str = Field(default="", alias="routingStrategy")

    class Config:
        populate_by_name = True
        extra = "ignore"

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data):
        # LLMs send explicit nulls for fields they have nothing to say about
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data

    @property
    def metadata(self):
        return None


class ProjectClassification(_ClassificationBase):
    type: Literal["PROJECT"]
    project_data: Optional[ProjectMetadata] = Field(default=None, alias="projectData")

    @property
    def metadata(self):
        return self.project_data or ProjectMetadata(status=self.status)


class PersonClassification(_ClassificationBase):
    type: Literal["PERSON"]
    person_data: Optional[PersonMetadata] = Field(default=None, alias="personData")

    @property
    def metadata(self):
        return self.person_data or PersonMetadata()


class IdeaClassification(_ClassificationBase):
    type: Literal["IDEA"]
    idea_data: Optional[IdeaMetadata] = Field(default=None, alias="ideaData")

    @property
    def metadata(self):
        return self.idea_data or IdeaMetadata()


class AdminClassification(_ClassificationBase):
    type: Literal["ADMIN"]
    admin_data: Optional[AdminMetadata] = Field(default=None, alias="adminData")

    @property
    def metadata(self):
        return self.admin_data or AdminMetadata()


class ClarifyClassification(_ClassificationBase):
    type: Literal["CLARIFY"]
    title: str = "Needs clarification"
    clarification_question: str = Field(default="Can you elaborate?", alias="clarificationQuestion")


ClassificationResult = Annotated[
    Union[
        ProjectClassification,
        PersonClassification,
        IdeaClassification,
        AdminClassification,
        ClarifyClassification,
    ],
    Field(discriminator="type"),
]

classification_adapter = TypeAdapter(ClassificationResult)
