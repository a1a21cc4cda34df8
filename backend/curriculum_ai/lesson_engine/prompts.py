"""Lesson engine prompts — lesson body, quiz, and tutor chat."""

from __future__ import annotations

LESSON_CONTENT_PROMPT = """You are an expert educator specializing in {subject} for {grade_level} students.

Create a comprehensive, engaging lesson based on this title: "{title}"
and description: "{description}".

Format your response as a JSON object with the following structure:
{{
  "title": "{title}",
  "sections": [
    {{
      "title": "Section title",
      "content": "Section content with explanations, examples, and educational material",
      "keyPoints": ["Key point 1", "Key point 2"]
    }}
  ],
  "keyTerms": [
    {{
      "term": "Term name",
      "definition": "Clear, grade-appropriate definition"
    }}
  ]
}}

Make sure the content is:
1. Age-appropriate for {grade_level} students
2. Educationally sound and accurate
3. Engaging and clear
4. Divided into 3-5 logical sections
5. Includes 4-8 key terms relevant to the topic

Return ONLY the raw JSON object. Do not wrap it in markdown code fences and do not add any other text."""

QUIZ_PROMPT = """Based on this lesson about "{title}" ({subject}):
{description}

Create exactly 5 multiple-choice quiz questions to test student understanding of the material.

Format your response as a JSON object with the following structure:
{{
  "questions": [
    {{
      "question": "Question text",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "correctAnswer": 0,
      "explanation": "Explanation of why this answer is correct"
    }}
  ]
}}

"correctAnswer" is the 0-based index of the correct option. Every question has exactly 4 options.

Make sure the questions:
1. Test understanding, not just memorization
2. Are appropriate for {grade_level} students
3. Cover different aspects of the lesson
4. Have clear, unambiguous correct answers
5. Include helpful explanations for each answer

Return ONLY the raw JSON object. Do not wrap it in markdown code fences and do not add any other text."""

TUTOR_PROMPT = """You are an AI learning assistant helping a student with a lesson on "{title}".

Lesson details:
- Title: {title}
- Subject: {subject}
- Grade level: {grade_level}
- Description: {description}
{content_excerpt}
Previous conversation:
{history}

Student's question: {message}

Provide a helpful, educational response that:
1. Answers the student's question directly
2. Explains concepts in an age-appropriate way
3. Encourages critical thinking
4. Is conversational and engaging
5. Stays focused on the lesson topic

Your response:"""

TUTOR_FALLBACK_REPLY = (
    "I'd be happy to help you with your question about {title}.\n\n"
    "The AI tutor is currently unavailable, so I can't give you a detailed answer right now. "
    "Please try again later, or ask your teacher for help."
)


def build_lesson_prompt(title: str, description: str, subject: str, grade_level: str) -> str:
    return LESSON_CONTENT_PROMPT.format(
        title=title,
        description=description or "",
        subject=subject,
        grade_level=grade_level,
    )


def build_quiz_prompt(title: str, description: str, subject: str, grade_level: str) -> str:
    return QUIZ_PROMPT.format(
        title=title,
        description=description or "",
        subject=subject,
        grade_level=grade_level,
    )


def build_tutor_prompt(
    title: str,
    description: str,
    subject: str,
    grade_level: str,
    message: str,
    history: list[tuple[str, str]],
    content_excerpt: str = "",
) -> str:
    """Render the tutor prompt. ``history`` is a list of (role, text) pairs, oldest first."""
    return TUTOR_PROMPT.format(
        title=title,
        description=description or "",
        subject=subject,
        grade_level=grade_level,
        content_excerpt=f"\nAI-generated content: {content_excerpt}...\n" if content_excerpt else "",
        history="\n".join(f"{role}: {text}" for role, text in history),
        message=message,
    )
