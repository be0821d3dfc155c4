import pytest

from harmonia.errors import ScriptNotFoundError, StepValidationError
from harmonia.models import Channel, Envelope, HarmonyError, Message, Termination
from harmonia.steps import ExtractInputStep


def _script_message(script: dict) -> dict:
    return {"role": "system", "contentType": "harmony-script", "content": script}


def test_envelope_reads_aliases_and_enums() -> None:
    envelope = Envelope.from_dict({
        "HRFVersion": "1.0",
        "messages": [
            {"role": "assistant", "channel": "FINAL", "content": "hi", "termination": "return"},
        ],
    })

    message = envelope.messages[0]
    assert envelope.version == "1.0"
    assert message.channel is Channel.FINAL
    assert message.termination is Termination.RETURN


def test_envelope_json_uses_wire_field_names() -> None:
    envelope = Envelope(
        version="1.0",
        messages=[Message(role="assistant", channel=Channel.COMMENTARY, content_type="json", content={"a": 1})],
    )

    data = envelope.to_json_dict()

    assert data["HRFVersion"] == "1.0"
    assert data["messages"][0]["contentType"] == "json"
    assert data["messages"][0]["channel"] == "commentary"
    assert Envelope.parse_json(envelope.to_json()) == envelope


def test_get_script_returns_first_script_from_system_messages() -> None:
    envelope = Envelope.from_dict({
        "HRFVersion": "1.0",
        "messages": [
            {"role": "user", "contentType": "harmony-script", "content": {"steps": [{"type": "halt"}]}},
            _script_message({"vars": {"a": 1}, "steps": [{"type": "extract-input", "output": {"x": "$input.x"}}]}),
        ],
    })

    script = envelope.get_script()

    assert script.vars == {"a": 1}
    assert isinstance(script.steps[0], ExtractInputStep)


def test_get_script_without_script_raises() -> None:
    envelope = Envelope.from_dict({"HRFVersion": "1.0", "messages": [{"role": "system", "content": "plain"}]})

    with pytest.raises(ScriptNotFoundError):
        envelope.get_script()


def test_get_script_with_invalid_step_raises() -> None:
    envelope = Envelope.from_dict({
        "HRFVersion": "1.0",
        "messages": [_script_message({"steps": [{"type": "tool-call", "recipient": "nodot", "save_as": "x"}]})],
    })

    with pytest.raises(StepValidationError):
        envelope.get_script()


def test_plain_system_prompts_and_user_message() -> None:
    envelope = Envelope.from_dict({
        "HRFVersion": "1.0",
        "messages": [
            {"role": "system", "content": "You are helpful."},
            _script_message({"steps": []}),
            {"role": "user", "content": "What is up?"},
            {"role": "user", "content": "second"},
        ],
    })

    assert envelope.plain_system_prompts() == [(None, "You are helpful.")]
    assert envelope.user_message() == (None, "What is up?")


def test_harmony_error_to_dict() -> None:
    error = HarmonyError(code="X", message="bad", details=["a"])

    assert error.to_dict() == {"code": "X", "message": "bad", "details": ["a"]}
