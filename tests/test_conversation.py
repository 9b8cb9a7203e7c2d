from __future__ import annotations

from galaxygpt.models import ConversationTurn
from galaxygpt.services.conversation import ConversationAssembler, ConversationConfig


def test_history_order_preserved_and_context_injected():
    assembler = ConversationAssembler(
        ConversationConfig(system_prompt="You answer Galaxy questions.", user_prompt_template="{question}\n\nInformation:\n{context}"),
    )
    prior = [ConversationTurn(role="user", content="hi"), ConversationTurn(role="assistant", content="hello")]

    turns = assembler.build_conversation("what is the deity?", "Deity is a ship.", prior)

    assert [turn.role for turn in turns] == ["system", "user", "assistant", "user"]
    assert turns[0].content == "You answer Galaxy questions."
    assert turns[1:3] == prior
    assert turns[3].content == "what is the deity?\n\nInformation:\nDeity is a ship."


def test_without_history_only_system_and_question():
    turns = ConversationAssembler().build_conversation("what is the deity?", "Deity is a ship.")
    assert [turn.role for turn in turns] == ["system", "user"]
    assert "what is the deity?" in turns[1].content
    assert "Deity is a ship." in turns[1].content


def test_braces_in_question_or_context_are_not_formatted():
    assembler = ConversationAssembler(ConversationConfig(system_prompt="s", user_prompt_template="Q: {question} C: {context}"))
    turns = assembler.build_conversation("what is {context}?", "{{infobox}} {question}")
    assert turns[-1].content == "Q: what is {context}? C: {{infobox}} {question}"


def test_prior_turns_are_not_mutated():
    prior = [ConversationTurn(role="user", content="hi")]
    ConversationAssembler().build_conversation("q", "c", prior)
    assert prior == [ConversationTurn(role="user", content="hi")]


def test_system_prompt_override():
    turns = ConversationAssembler().build_conversation("q", "c", system_prompt="custom")
    assert turns[0] == ConversationTurn(role="system", content="custom")
