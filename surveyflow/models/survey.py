"""Pydantic models for declarative survey definitions.

A definition is an ordered list of sections, each holding ordered questions.
Sections and questions may carry a `showWhen` predicate (question id ->
required answer value) and questions may carry `conditionalLogic`, a map from
answer value to a hide effect. Wire names are camelCase; attributes are
snake_case.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, Iterator, List, Literal, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    field_serializer,
    field_validator,
    model_validator,
)

from surveyflow.logic.errors import SurveyDefinitionError
from surveyflow.models.question_kind import QuestionKind

ALL_OTHER_QUESTIONS = "all_other_questions"


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class QuestionOption(_WireModel):
    value: Union[str, int, float, bool]
    label: str = ""


class ScaleConfig(_WireModel):
    min: int = 1
    max: int = 5
    min_label: Optional[str] = Field(default=None, alias="minLabel")
    max_label: Optional[str] = Field(default=None, alias="maxLabel")

    @model_validator(mode="after")
    def _min_below_max(self) -> "ScaleConfig":
        if self.min >= self.max:
            raise ValueError(f"scale.min ({self.min}) must be lower than scale.max ({self.max})")
        return self


class CustomInput(_WireModel):
    show_when: Any = Field(alias="showWhen")
    placeholder: str = ""
    type: str = "text"


class HideQuestion(BaseModel):
    kind: Literal["question"] = "question"
    question_id: str


class HideAllOtherQuestions(BaseModel):
    kind: Literal["all_other_questions"] = "all_other_questions"


HideTarget = Annotated[Union[HideQuestion, HideAllOtherQuestions], Field(discriminator="kind")]


class ConditionalEffect(_WireModel):
    # Presentation-only keys (e.g. showEncouragement) are kept as extras
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    hide_questions: List[HideTarget] = Field(default_factory=list, alias="hideQuestions")

    @field_validator("hide_questions", mode="before")
    @classmethod
    def _parse_targets(cls, v: Any) -> Any:
        if v is None:
            return []
        if not isinstance(v, (list, tuple)):
            raise ValueError("hideQuestions must be a list")
        out: list = []
        for item in v:
            if isinstance(item, str):
                if item == ALL_OTHER_QUESTIONS:
                    out.append({"kind": "all_other_questions"})
                else:
                    out.append({"kind": "question", "question_id": item})
            else:
                out.append(item)
        return out

    @field_serializer("hide_questions")
    def _dump_targets(self, targets: List[HideTarget]) -> List[str]:
        return [
            ALL_OTHER_QUESTIONS if isinstance(t, HideAllOtherQuestions) else t.question_id
            for t in targets
        ]


class Question(_WireModel):
    id: str
    type: str
    text: str = Field(default="", validation_alias=AliasChoices("text", "question"))
    required: bool = False
    options: List[QuestionOption] = Field(default_factory=list)
    scale: Optional[ScaleConfig] = None
    placeholder: Optional[str] = None
    rows: Optional[int] = None
    custom_input: Optional[CustomInput] = Field(default=None, alias="customInput")
    show_when: Optional[Dict[str, Any]] = Field(default=None, alias="showWhen")
    conditional_logic: Dict[str, ConditionalEffect] = Field(default_factory=dict, alias="conditionalLogic")

    @field_validator("type")
    @classmethod
    def _known_kind(cls, v: str) -> str:
        if v not in QuestionKind.ALL:
            raise ValueError(f"unsupported question type {v!r}; expected one of {sorted(QuestionKind.ALL)}")
        return v

    @field_validator("conditional_logic", mode="before")
    @classmethod
    def _stringify_keys(cls, v: Any) -> Any:
        # Keys are looked up by the answer's serialised scalar form
        if isinstance(v, dict):
            return {
                ("true" if k is True else "false" if k is False else str(k)): eff
                for k, eff in v.items()
            }
        return v or {}


class Section(_WireModel):
    id: str
    title: str = ""
    description: Optional[str] = None
    questions: List[Question] = Field(default_factory=list)
    show_when: Optional[Dict[str, Any]] = Field(default=None, alias="showWhen")


class SurveySettings(_WireModel):
    show_progress: bool = True
    save_partial: bool = True


class SurveyDefinition(_WireModel):
    id: str
    name: str = ""
    description: Optional[str] = None
    sections: List[Section] = Field(default_factory=list)
    settings: SurveySettings = Field(default_factory=SurveySettings)

    @model_validator(mode="before")
    @classmethod
    def _lift_sections(cls, data: Any) -> Any:
        """Accept the stored template shape where sections sit under `questions`."""
        if isinstance(data, dict):
            data = dict(data)
            nested = data.pop("questions", None)
            if "sections" not in data and isinstance(nested, dict):
                data["sections"] = nested.get("sections") or []
            if data.get("settings") is None:
                data.pop("settings", None)
        return data

    @model_validator(mode="after")
    def _check_integrity(self) -> "SurveyDefinition":
        section_ids: set[str] = set()
        question_ids: set[str] = set()
        for section in self.sections:
            if section.id in section_ids:
                raise ValueError(f"duplicate section id {section.id!r}")
            section_ids.add(section.id)
            for q in section.questions:
                if q.id in question_ids:
                    raise ValueError(f"duplicate question id {q.id!r}")
                question_ids.add(q.id)

        def _check_refs(owner: str, predicate: Optional[Dict[str, Any]]) -> None:
            for ref in (predicate or {}):
                if ref not in question_ids:
                    raise ValueError(f"{owner} showWhen references unknown question {ref!r}")

        for section in self.sections:
            _check_refs(f"section {section.id!r}", section.show_when)
            for q in section.questions:
                _check_refs(f"question {q.id!r}", q.show_when)
                for value, effect in q.conditional_logic.items():
                    for target in effect.hide_questions:
                        if isinstance(target, HideQuestion) and target.question_id not in question_ids:
                            raise ValueError(
                                f"question {q.id!r} conditionalLogic[{value!r}] hides unknown question {target.question_id!r}"
                            )
        return self

    def iter_questions(self) -> Iterator[Question]:
        for section in self.sections:
            yield from section.questions

    def find_question(self, question_id: str) -> Optional[Question]:
        for q in self.iter_questions():
            if q.id == question_id:
                return q
        return None

    def section_of(self, question_id: str) -> Optional[Section]:
        for section in self.sections:
            if any(q.id == question_id for q in section.questions):
                return section
        return None

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def load_definition(payload: Any) -> SurveyDefinition:
    """Validate a raw payload into a SurveyDefinition.

    Raises SurveyDefinitionError carrying the pydantic error list so callers
    can surface an actionable message.
    """
    if isinstance(payload, SurveyDefinition):
        return payload
    try:
        return SurveyDefinition.model_validate(payload)
    except PydanticValidationError as e:
        errors = [
            {"loc": [str(p) for p in err.get("loc", ())], "msg": str(err.get("msg", ""))}
            for err in e.errors()
        ]
        raise SurveyDefinitionError("survey definition is invalid", errors=errors) from e


__all__ = [
    "ALL_OTHER_QUESTIONS",
    "QuestionOption",
    "ScaleConfig",
    "CustomInput",
    "HideQuestion",
    "HideAllOtherQuestions",
    "HideTarget",
    "ConditionalEffect",
    "Question",
    "Section",
    "SurveySettings",
    "SurveyDefinition",
    "load_definition",
]
