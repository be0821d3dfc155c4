import json

from harmonia.converter import envelope_json_to_text, envelope_to_text, text_to_envelope, text_to_envelope_json
from harmonia.models import Channel, Envelope, Message, Termination


def test_round_trip_plain_text_envelope() -> None:
    envelope = Envelope(
        version="1.0",
        messages=[
            Message(role="system", content="You are a helpful cook.", termination=Termination.END),
            Message(role="user", content="What's for dinner?", termination=Termination.END),
            Message(role="assistant", channel=Channel.ANALYSIS, content="Think.", termination=Termination.END),
            Message(
                role="assistant",
                channel=Channel.COMMENTARY,
                recipient="functions.search",
                content="pasta",
                termination=Termination.CALL,
            ),
            Message(role="assistant", channel=Channel.FINAL, content="Pasta!", termination=Termination.RETURN),
        ],
    )

    assert text_to_envelope(envelope_to_text(envelope)) == envelope


def test_render_structured_content_and_default_terminator() -> None:
    envelope = Envelope(
        version="1.0",
        messages=[
            Message(
                role="assistant",
                channel=Channel.COMMENTARY,
                recipient="functions.add",
                content_type="json",
                content={"a": 1, "b": 2},
            )
        ],
    )

    assert envelope_to_text(envelope) == (
        '<|start|>assistant<|channel|>commentary to=functions.add<|constrain|>json<|message|>{"a":1,"b":2}<|end|>'
    )


def test_text_to_envelope_json_stamps_version() -> None:
    document = json.loads(text_to_envelope_json("<|start|>user<|message|>Hello<|end|>", version="2.0"))

    assert document["HRFVersion"] == "2.0"
    assert document["messages"] == [
        {
            "role": "user",
            "channel": None,
            "recipient": None,
            "contentType": None,
            "content": "Hello",
            "termination": "end",
        }
    ]


def test_envelope_json_to_text() -> None:
    document = json.dumps({
        "HRFVersion": "1.0",
        "messages": [
            {"role": "user", "content": "hi", "termination": "end"},
            {"role": "assistant", "channel": "final", "content": "hello", "termination": "return"},
        ],
    })

    assert envelope_json_to_text(document).splitlines() == [
        "<|start|>user<|message|>hi<|end|>",
        "<|start|>assistant<|channel|>final<|message|>hello<|return|>",
    ]


def test_structured_string_content_is_rendered_as_json() -> None:
    envelope = Envelope(
        version="1.0",
        messages=[
            Message(
                role="assistant",
                channel=Channel.FINAL,
                content_type="json",
                content="hello",
                termination=Termination.END,
            )
        ],
    )

    text = envelope_to_text(envelope)

    assert text == '<|start|>assistant<|channel|>final<|constrain|>json<|message|>"hello"<|end|>'
    assert text_to_envelope(text) == envelope
