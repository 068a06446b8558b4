"""Tests for the tool/resource registry and dispatcher."""

from typing import Optional

import pytest
from pydantic import BaseModel, Field

from registry import (
    Dispatcher,
    RegistryBuilder,
    UnknownResourceError,
    UnknownToolError,
    ValidationError,
    compile_template,
    parse_arguments,
)
from response import text_result


class EchoArgs(BaseModel):
    patient_id: int = Field(..., gt=0)
    note: Optional[str] = None


def _dispatcher() -> tuple[Dispatcher, list]:
    """Dispatcher with one tool and two resources; calls are recorded."""
    seen: list = []
    builder = RegistryBuilder()

    @builder.tool("echo", "Echo the patient id", EchoArgs)
    async def echo(args: EchoArgs):
        seen.append(args)
        return text_result(f"patient {args.patient_id}")

    @builder.resource("patient://{id}", "One patient")
    async def patient(params):
        seen.append(params)
        return f'{{"id": {params["id"]}}}'

    @builder.resource("patients://list", "All patients")
    async def patients(params):
        return '{"patients": []}'

    return Dispatcher(builder.build()), seen


# --- Tools ---


class TestCallTool:
    @pytest.mark.asyncio
    async def test_unknown_tool(self) -> None:
        dispatcher, _ = _dispatcher()
        with pytest.raises(UnknownToolError, match="Unknown tool: nope"):
            await dispatcher.call_tool("nope", {})

    @pytest.mark.asyncio
    async def test_json_string_arguments_are_parsed(self) -> None:
        dispatcher, seen = _dispatcher()

        result = await dispatcher.call_tool("echo", '{"patient_id":5}')

        assert seen[0].patient_id == 5
        assert result.text == "patient 5"

    @pytest.mark.asyncio
    async def test_invalid_arguments_never_reach_handler(self) -> None:
        dispatcher, seen = _dispatcher()

        with pytest.raises(ValidationError) as info:
            await dispatcher.call_tool("echo", {"patient_id": 0})

        assert info.value.tool == "echo"
        assert "patient_id" in str(info.value)
        assert seen == []

    @pytest.mark.asyncio
    async def test_malformed_json_arguments(self) -> None:
        dispatcher, seen = _dispatcher()

        with pytest.raises(ValidationError, match="Invalid arguments for echo: arguments:"):
            await dispatcher.call_tool("echo", '{"patient_id": 5')

        assert seen == []

    @pytest.mark.asyncio
    async def test_non_object_arguments(self) -> None:
        dispatcher, _ = _dispatcher()
        with pytest.raises(ValidationError, match="must be an object"):
            await dispatcher.call_tool("echo", "[5]")

    @pytest.mark.asyncio
    async def test_missing_required_argument(self) -> None:
        dispatcher, _ = _dispatcher()
        with pytest.raises(ValidationError, match="patient_id"):
            await dispatcher.call_tool("echo", None)

    def test_list_tools_publishes_schema(self) -> None:
        dispatcher, _ = _dispatcher()

        [tool] = dispatcher.list_tools()

        assert tool["name"] == "echo"
        assert tool["input_schema"]["required"] == ["patient_id"]
        assert tool["input_schema"]["properties"]["patient_id"]["exclusiveMinimum"] == 0


def test_parse_arguments() -> None:
    assert parse_arguments(None) == {}
    assert parse_arguments("") == {}
    assert parse_arguments({"a": 1}) == {"a": 1}
    with pytest.raises(TypeError):
        parse_arguments("[1, 2]")


# --- Resources ---


class TestResources:
    def test_template_extracts_id(self) -> None:
        dispatcher, _ = _dispatcher()
        spec, params = dispatcher.resolve_resource("patient://42")
        assert spec.uri_template == "patient://{id}"
        assert params == {"id": "42"}

    def test_template_does_not_match_list_uri(self) -> None:
        pattern, names = compile_template("patient://{id}")
        assert names == ("id",)
        assert pattern.match("patients://list") is None
        assert pattern.match("patient://42/extra") is None

    def test_literal_text_is_escaped(self) -> None:
        pattern, _ = compile_template("appointment-types://list")
        assert pattern.match("appointment-types://list")
        assert pattern.match("appointment-typesX//list") is None

    def test_static_and_template_listing(self) -> None:
        dispatcher, _ = _dispatcher()
        assert [s.uri_template for s in dispatcher.list_resources()] == ["patients://list"]
        assert [s.uri_template for s in dispatcher.list_resource_templates()] == ["patient://{id}"]

    @pytest.mark.asyncio
    async def test_read_resource(self) -> None:
        dispatcher, seen = _dispatcher()

        contents = await dispatcher.read_resource("patient://7")

        assert contents.uri == "patient://7"
        assert contents.mime_type == "application/json"
        assert contents.text == '{"id": 7}'
        assert seen == [{"id": "7"}]

    @pytest.mark.asyncio
    async def test_unknown_resource(self) -> None:
        dispatcher, _ = _dispatcher()
        with pytest.raises(UnknownResourceError):
            await dispatcher.read_resource("invoice://1")


# --- Builder ---


def test_duplicate_tool_rejected() -> None:
    builder = RegistryBuilder()

    @builder.tool("echo", "first")
    async def first(args):
        return text_result("1")

    with pytest.raises(ValueError, match="already registered"):

        @builder.tool("echo", "second")
        async def second(args):
            return text_result("2")


def test_registry_is_frozen_after_build() -> None:
    builder = RegistryBuilder()
    registry = builder.build()

    with pytest.raises(RuntimeError):
        builder.tool("late", "too late")(lambda args: None)
    with pytest.raises(TypeError):
        registry.tools["x"] = None
