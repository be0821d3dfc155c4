import re

import pytest

from harmonia.errors import FormatError
from harmonia.models import Channel, Termination
from harmonia.parser import parse_conversation


def test_parse_single_user_message() -> None:
    conversation = parse_conversation("<|start|>user<|message|>Hello<|end|>")

    assert len(conversation) == 1
    message = conversation.messages[0]
    assert message.role == "user"
    assert message.channel is None
    assert message.recipient is None
    assert message.content == "Hello"
    assert message.termination is Termination.END


def test_parse_tool_call_with_json_content() -> None:
    text = (
        "<|start|>assistant<|channel|>commentary to=functions.add<|constrain|>json"
        '<|message|>{"a":1,"b":2}<|call|>'
    )

    message = parse_conversation(text).messages[0]

    assert message.role == "assistant"
    assert message.channel is Channel.COMMENTARY
    assert message.recipient == "functions.add"
    assert message.content_type == "json"
    assert message.content == {"a": 1, "b": 2}
    assert message.termination is Termination.CALL


def test_parse_multiple_messages_keeps_order_and_whitespace() -> None:
    text = (
        "noise<|start|>system<|message|>  be brief  <|end|>\n"
        "<|start|>assistant<|channel|>final<|message|>done<|return|>"
    )

    conversation = parse_conversation(text)

    assert [message.role for message in conversation] == ["system", "assistant"]
    assert conversation.messages[0].content == "  be brief  "
    assert conversation.messages[1].channel is Channel.FINAL
    assert conversation.messages[1].termination is Termination.RETURN


def test_parse_channel_is_case_insensitive_and_recipient_optional() -> None:
    message = parse_conversation("<|start|>assistant<|channel|>Analysis<|message|>thinking<|end|>").messages[0]

    assert message.channel is Channel.ANALYSIS
    assert message.recipient is None


def test_parse_recipient_with_dotted_namespace() -> None:
    text = "<|start|>assistant<|channel|>commentary to=tools.kitchen.search<|message|>{}<|call|>"

    message = parse_conversation(text).messages[0]

    assert message.recipient == "tools.kitchen.search"
    assert message.content == "{}"


def test_parse_stops_at_leftmost_terminator() -> None:
    conversation = parse_conversation(
        "<|start|>assistant<|channel|>final<|message|>done<|return|> trailing<|end|>"
    )

    assert len(conversation) == 1
    message = conversation.messages[0]
    assert message.content == "done"
    assert message.termination is Termination.RETURN


def test_parse_text_without_start_token_is_empty_conversation() -> None:
    assert len(parse_conversation("just some text")) == 0


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("", "Input is empty"),
        ("   \n", "Input is empty"),
        ("<|start|><|message|>hi<|end|>", "Missing role in header"),
        ("<|start|>user hi<|end|>", "Header did not lead to <|message|>"),
        ("<|start|>user<|message|>hi", "Missing terminator token"),
        ("<|start|>assistant<|channel|>shouting<|message|>hi<|end|>", "Unknown channel 'shouting'"),
        (
            "<|start|>assistant<|channel|>commentary<|constrain|>json<|message|>{nope<|call|>",
            "Content for contentType='json' is not valid JSON.",
        ),
    ],
)
def test_parse_rejects_malformed_text(text: str, message: str) -> None:
    with pytest.raises(FormatError, match=re.escape(message)):
        parse_conversation(text)
