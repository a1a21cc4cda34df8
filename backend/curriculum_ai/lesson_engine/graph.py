"""Lesson engine LangGraph definition.

3-node pipeline: build_prompts → generate_content → generate_quiz
"""

from __future__ import annotations

from langgraph.graph import END, START, StateGraph

from curriculum_ai.lesson_engine.nodes import build_prompts, generate_content, generate_quiz
from curriculum_ai.lesson_engine.state import LessonGenerationState


def build_graph():
    graph = StateGraph(LessonGenerationState)

    graph.add_node("build_prompts", build_prompts)
    graph.add_node("generate_content", generate_content)
    graph.add_node("generate_quiz", generate_quiz)

    graph.add_edge(START, "build_prompts")
    graph.add_edge("build_prompts", "generate_content")
    graph.add_edge("generate_content", "generate_quiz")
    graph.add_edge("generate_quiz", END)

    return graph.compile()
