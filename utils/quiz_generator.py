import json
import logging
import re
from typing import Dict, Any, List, Optional

from langchain_openai import ChatOpenAI
from langchain_core.messages import HumanMessage, SystemMessage
import google.generativeai as genai

from config import Settings
from models.models import Training
from utils.errors import ServiceError

logger = logging.getLogger(__name__)

QUESTION_COUNT = 5
MAX_CONTENT_CHARS = 8000
MIN_CONTENT_CHARS = 50
QUESTION_TYPES = ("single", "boolean", "multiple")

SYSTEM_PROMPT = "You are an educational quiz generator. You only answer with JSON."

QUIZ_PROMPT = """Based on the following training content, generate exactly {count} questions to test comprehension.
Mix the question types between Multiple Choice, True/False, and Select All That Apply.

CONTENT:
\"\"\"
{content}
\"\"\"

REQUIREMENTS:
- Generate exactly {count} questions
- Include at least 1 True/False and 1 "Select All That Apply" question if appropriate
- For Multiple Choice: 4 options, 1 correct
- For True/False: 2 options (true first, false second)
- For Select All That Apply: 4-5 options, 2+ correct
- Questions should test understanding, not memorization
- Language: {language}

OUTPUT FORMAT (JSON only, no markdown):
{{
  "questions": [
    {{
      "question": "What is the main benefit of...?",
      "type": "single",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "correctAnswer": [0]
    }},
    {{
      "question": "Statement X is true?",
      "type": "boolean",
      "options": ["True", "False"],
      "correctAnswer": [0]
    }},
    {{
      "question": "Which of these are symptoms of...?",
      "type": "multiple",
      "options": ["Symptom A", "Symptom B", "Symptom C", "Symptom D"],
      "correctAnswer": [0, 2]
    }}
  ]
}}"""


def training_content(training: Training) -> str:
    """Transcript when present, otherwise the title and description."""
    content = training.transcript or ""
    if not content.strip():
        content = f"{training.title or ''}\n\n{training.description or ''}"
    return content


def build_prompt(content: str, language: str) -> str:
    return QUIZ_PROMPT.format(
        count=QUESTION_COUNT,
        content=content[:MAX_CONTENT_CHARS],
        language=language
    )


def strip_code_fences(text: str) -> str:
    text = re.sub(r"```(?:json)?\s*\n?", "", text or "")
    return text.strip()


def parse_quiz_response(text: str) -> List[Dict[str, Any]]:
    """
    Parse and validate the model output.

    Returns the list of questions, each with question, type, options and
    correctAnswer. Raises ServiceError("internal") on anything else; a
    partially valid quiz is never accepted.
    """
    cleaned = strip_code_fences(text)
    try:
        data = json.loads(cleaned)
    except (json.JSONDecodeError, TypeError):
        logger.error(f"Failed to parse AI response: {cleaned[:400]}")
        raise ServiceError("internal", "Failed to parse AI response. Please try again.")

    questions = data.get("questions") if isinstance(data, dict) else None
    if not isinstance(questions, list) or len(questions) != QUESTION_COUNT:
        logger.warning(f"Unexpected question count: {len(questions) if isinstance(questions, list) else None}")
        raise ServiceError("internal", "AI generated invalid quiz. Please try again.")

    parsed = []
    for question in questions:
        if not _is_valid_question(question):
            logger.warning(f"Invalid question in AI response: {question}")
            raise ServiceError("internal", "AI generated invalid quiz. Please try again.")
        parsed.append({
            "question": question["question"].strip(),
            "type": question["type"],
            "options": [str(option) for option in question["options"]],
            "correctAnswer": sorted(set(question["correctAnswer"]))
        })
    return parsed


def _is_valid_question(question: Any) -> bool:
    if not isinstance(question, dict):
        return False
    text = question.get("question")
    options = question.get("options")
    correct = question.get("correctAnswer")
    if not isinstance(text, str) or not text.strip():
        return False
    if question.get("type") not in QUESTION_TYPES:
        return False
    if not isinstance(options, list) or len(options) < 2:
        return False
    if not isinstance(correct, list) or not correct:
        return False
    return all(
        isinstance(index, int) and not isinstance(index, bool) and 0 <= index < len(options)
        for index in correct
    )


class QuizGenerator:
    """Generates five-question quizzes from training content with an LLM."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.llm = None
        self.gemini_model = None

        # OpenAI first, Gemini as the alternative provider
        if settings.openai_api_key:
            self.llm = ChatOpenAI(
                model=settings.openai_model,
                temperature=0.7,
                api_key=settings.openai_api_key,
                max_retries=0
            )
            logger.info("Using OpenAI for quiz generation")
        elif settings.gemini_api_key:
            genai.configure(api_key=settings.gemini_api_key)
            self.gemini_model = genai.GenerativeModel(settings.gemini_model)
            logger.info("Using Gemini for quiz generation")
        else:
            logger.warning("No AI provider configured for quiz generation")

    @property
    def is_configured(self) -> bool:
        return self.llm is not None or self.gemini_model is not None

    def generate(self, training: Training) -> List[Dict[str, Any]]:
        """
        Generate a quiz for a training.

        Args:
            training: Training whose transcript (or title and description) is used

        Returns:
            Validated questions including their correct answers
        """
        if not self.is_configured:
            raise ServiceError("failed-precondition", "AI service not configured.")

        content = training_content(training)
        if not content.strip() or len(content) < MIN_CONTENT_CHARS:
            raise ServiceError(
                "failed-precondition",
                "Insufficient content for quiz generation. Please add a transcript or description."
            )

        prompt = build_prompt(content, self.settings.quiz_language)
        response_text = self._generate_ai_response(SYSTEM_PROMPT, prompt)
        return parse_quiz_response(response_text)

    def _generate_ai_response(self, system_prompt: str, user_prompt: str) -> Optional[str]:
        """
        Single call to the configured model. Failures propagate to the caller.
        """
        if self.llm:
            messages = [
                SystemMessage(content=system_prompt),
                HumanMessage(content=user_prompt)
            ]
            response = self.llm.invoke(messages)
            return response.content
        full_prompt = f"{system_prompt}\n\n{user_prompt}"
        response = self.gemini_model.generate_content(full_prompt, request_options={"retry": None})
        return response.text
