"""Prompt templates and the response schema for the three Gateway calls.

All pupil-facing wording is French. Each builder returns the full user
prompt; the Gateway sends it as a single user turn.
"""

from __future__ import annotations

from typing import Any

from comprehension.schemas import (
    GLOSSARY_MAX,
    GLOSSARY_MIN,
    MAX_SCORE,
    MAX_TOTAL_SCORE,
    QUESTION_COMPOSITION,
    QUESTION_COUNT,
    Question,
    QuestionType,
    StoryData,
    UserScore,
)

# ---------------------------------------------------------------------------
# Op A: transcription + quiz generation
# ---------------------------------------------------------------------------

STORY_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "content": {"type": "string"},
        "glossary": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "word": {"type": "string"},
                    "definition": {"type": "string"},
                },
                "required": ["word", "definition"],
            },
        },
        "questions": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "integer"},
                    "text": {"type": "string"},
                    "type": {
                        "type": "string",
                        "enum": [t.value for t in QuestionType],
                    },
                },
                "required": ["id", "text", "type"],
            },
        },
    },
    "required": ["title", "content", "glossary", "questions"],
}

_ASSESSMENT_TEMPLATE = """\
Tu prépares une évaluation de compréhension de l'écrit pour un élève de \
5e année primaire (environ 10 ans).

Lis UNIQUEMENT le texte imprimé visible dans l'image.
- "content" : transcris TOUT le texte mot pour mot, sans rien inventer, \
sans résumer et sans corriger. Si aucun texte n'est lisible, laisse "content" vide.
- "title" : le titre du texte, ou un titre court si le texte n'en a pas.
- "questions" : exactement {count} questions numérotées de 1 à {count} :
  {literal} de type LITERAL (repérage d'une information écrite dans le texte),
  {inferential} de type INFERENTIAL (déduction de ce qui n'est pas dit directement),
  {evaluative} de type EVALUATIVE (avis ou jugement personnel justifié).
- "glossary" : de {glossary_min} à {glossary_max} mots difficiles du texte, \
chacun avec une définition simple adaptée à un enfant de 10 ans.

Les questions sont courtes, claires et en français.
Réponds STRICTEMENT en JSON.
"""


def build_assessment_prompt() -> str:
    """Returns the transcription + quiz generation prompt."""
    return _ASSESSMENT_TEMPLATE.format(
        count=QUESTION_COUNT,
        literal=QUESTION_COMPOSITION[QuestionType.LITERAL],
        inferential=QUESTION_COMPOSITION[QuestionType.INFERENTIAL],
        evaluative=QUESTION_COMPOSITION[QuestionType.EVALUATIVE],
        glossary_min=GLOSSARY_MIN,
        glossary_max=GLOSSARY_MAX,
    )


# ---------------------------------------------------------------------------
# Op B: answer correction
# ---------------------------------------------------------------------------

_EVALUATION_TEMPLATE = '''\
Tu es un correcteur bienveillant pour un élève de 5e année primaire.
Ton ton est toujours encourageant et simple.

Évalue la réponse de l'élève à la question, en t'appuyant sur le texte :
0 = incorrect
1 = partiellement correct
2 = correct

Règles :
- Le texte et la question sont fournis ci-dessous : ne dis jamais que tu ne \
peux pas évaluer et ne demande jamais de précision à l'élève.
- Si la réponse est vide, considère-la comme incorrecte.
- "correctAnswer" donne toujours la réponse idéale, en une ou deux phrases.
- Pour une question de type EVALUATIVE, accepte tout avis justifié par le texte.

Toujours répondre en JSON strict :
{{
  "isCorrect": true/false,
  "score": 0/1/2,
  "feedback": "message court et positif",
  "correctAnswer": "réponse idéale"
}}

TEXTE :
"""{content}"""

QUESTION ({qtype}) :
"""{question}"""

RÉPONSE DE L'ÉLÈVE :
"""{answer}"""
'''


def build_evaluation_prompt(question: Question, student_answer: str, story: StoryData) -> str:
    """Returns the correction prompt for one answer."""
    return _EVALUATION_TEMPLATE.format(
        content=story.content,
        qtype=question.type.value,
        question=question.text,
        answer=student_answer,
    )


# ---------------------------------------------------------------------------
# Op C: final encouragement
# ---------------------------------------------------------------------------

_FINAL_FEEDBACK_TEMPLATE = """\
Tu es un enseignant qui donne un retour positif à {first_name}, un élève \
de 5e année primaire.

Résultats :
- Littéral : {literal}/{literal_max}
- Inférentiel : {inferential}/{inferential_max}
- Évaluatif : {evaluative}/{evaluative_max}
- Total : {total}/{max_score}

Rédige 3 à 4 phrases adressées directement à {first_name} :
- Félicite l'élève
- Explique ce qu'il a bien fait
- Donne 1 ou 2 conseils simples
Sans JSON, juste le texte du message.
"""


def build_final_feedback_prompt(
    total_score: int,
    max_score: int,
    first_name: str,
    breakdown: UserScore | None = None,
) -> str:
    """Returns the final-feedback prompt.

    Without a breakdown the subscores are unknown and rendered as "?".
    """
    if breakdown is None:
        literal = inferential = evaluative = "?"
    else:
        literal, inferential, evaluative = (
            breakdown.literal,
            breakdown.inferential,
            breakdown.evaluative,
        )
    return _FINAL_FEEDBACK_TEMPLATE.format(
        first_name=first_name,
        literal=literal,
        literal_max=MAX_SCORE[QuestionType.LITERAL],
        inferential=inferential,
        inferential_max=MAX_SCORE[QuestionType.INFERENTIAL],
        evaluative=evaluative,
        evaluative_max=MAX_SCORE[QuestionType.EVALUATIVE],
        total=total_score,
        max_score=max_score or MAX_TOTAL_SCORE,
    )
