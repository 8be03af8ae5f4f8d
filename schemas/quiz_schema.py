from typing import List, Optional, Dict, Union, Literal

from schemas.base_schema import CamelModel

Selection = Union[int, str]

class GenerateQuizRequest(CamelModel):
    training_id: int

class GeneratedQuestion(CamelModel):
    # Never carries correctAnswer; answer keys live in the session store
    id: int
    question: str
    type: Literal["single", "boolean", "multiple"]
    options: List[str]

class GenerateQuizResponse(CamelModel):
    session_id: str
    questions: List[GeneratedQuestion]

class CheckAnswerRequest(CamelModel):
    training_id: int
    # AI-generated quiz
    session_id: Optional[str] = None
    question_index: Optional[int] = None
    selected_indices: Optional[List[int]] = None
    # Legacy quiz
    question_id: Optional[int] = None
    selected_answer_ids: Optional[List[Selection]] = None

class CheckAnswerResponse(CamelModel):
    is_correct: bool
    correct_indices: Optional[List[int]] = None
    correct_answer_ids: Optional[List[int]] = None

class SubmitQuizRequest(CamelModel):
    training_id: int
    session_id: Optional[str] = None
    answers: Dict[str, List[Selection]]  # {"questionKey": [selection, ...]}

class SubmitQuizResponse(CamelModel):
    score: int
    passed: bool

class LegacyAnswerOption(CamelModel):
    id: int
    text: Optional[str] = None

class LegacyQuestion(CamelModel):
    id: int
    question: Optional[str] = None
    type: Optional[str] = None
    answers: List[LegacyAnswerOption]

class LegacyQuizResponse(CamelModel):
    training_id: int
    questions: List[LegacyQuestion]
