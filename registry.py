"""Tool and resource registry plus the dispatcher that serves them.

Tools and resources are registered once against a ``RegistryBuilder``;
``build()`` freezes them into a read-only ``Registry`` which is handed to the
``Dispatcher``. Each tool is one unit: name, description, a pydantic model
that is both its published input schema and its validator, and an async
handler.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from response import ToolResult

logger = logging.getLogger("cliniko-mcp")

ToolHandler = Callable[[Any], Awaitable[ToolResult]]
ResourceHandler = Callable[[dict[str, str]], Awaitable[str]]

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
class DispatchError(Exception):
    """Base class for failures raised by the dispatcher itself."""


class UnknownToolError(DispatchError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class UnknownResourceError(DispatchError):
    def __init__(self, uri: str) -> None:
        self.uri = uri
        super().__init__(f"Unknown resource: {uri}")


class ValidationError(DispatchError):
    """Tool arguments did not match the tool's declared input schema."""

    def __init__(self, tool: str, errors: list[dict[str, Any]]) -> None:
        self.tool = tool
        self.errors = errors
        details = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ())) or 'arguments'}: {err.get('msg')}"
            for err in errors
        )
        super().__init__(f"Invalid arguments for {tool}: {details}")


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------
class NoArguments(BaseModel):
    """Input model for tools that take no arguments."""


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    args_model: type[BaseModel]
    handler: ToolHandler

    @property
    def input_schema(self) -> dict[str, Any]:
        return self.args_model.model_json_schema()


def compile_template(uri_template: str) -> tuple[re.Pattern, tuple[str, ...]]:
    """Turn ``scheme://{param}`` into an anchored regex and its parameter names."""
    names = tuple(_PLACEHOLDER.findall(uri_template))
    pattern = ""
    last = 0
    for match in _PLACEHOLDER.finditer(uri_template):
        pattern += re.escape(uri_template[last:match.start()]) + "([^/]+)"
        last = match.end()
    pattern += re.escape(uri_template[last:])
    return re.compile(f"^{pattern}$"), names


@dataclass(frozen=True)
class ResourceSpec:
    uri_template: str
    description: str
    mime_type: str
    handler: ResourceHandler
    pattern: re.Pattern = field(init=False, repr=False, compare=False)
    param_names: tuple[str, ...] = field(init=False, compare=False)

    def __post_init__(self) -> None:
        pattern, names = compile_template(self.uri_template)
        object.__setattr__(self, "pattern", pattern)
        object.__setattr__(self, "param_names", names)

    @property
    def is_template(self) -> bool:
        return bool(self.param_names)

    def match(self, uri: str) -> Optional[dict[str, str]]:
        """Return the extracted parameters, or None if ``uri`` doesn't fit."""
        found = self.pattern.match(uri)
        if not found:
            return None
        return {name: found.group(i + 1) for i, name in enumerate(self.param_names)}


@dataclass(frozen=True)
class ResourceContents:
    uri: str
    mime_type: str
    text: str


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Registry:
    tools: Mapping[str, ToolSpec]
    resources: Mapping[str, ResourceSpec]


class RegistryBuilder:
    """Collects tools and resources during startup."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolSpec] = {}
        self._resources: dict[str, ResourceSpec] = {}
        self._built = False

    def _check_open(self) -> None:
        if self._built:
            raise RuntimeError("Registry has already been built")

    def add_tool(self, spec: ToolSpec) -> ToolSpec:
        self._check_open()
        if spec.name in self._tools:
            raise ValueError(f"Tool already registered: {spec.name}")
        self._tools[spec.name] = spec
        return spec

    def tool(
        self,
        name: str,
        description: str,
        args_model: type[BaseModel] = NoArguments,
    ) -> Callable[[ToolHandler], ToolHandler]:
        """Decorator registering ``handler`` under ``name``."""

        def decorator(handler: ToolHandler) -> ToolHandler:
            self.add_tool(ToolSpec(name, description, args_model, handler))
            return handler

        return decorator

    def add_resource(self, spec: ResourceSpec) -> ResourceSpec:
        self._check_open()
        if spec.uri_template in self._resources:
            raise ValueError(f"Resource already registered: {spec.uri_template}")
        self._resources[spec.uri_template] = spec
        return spec

    def resource(
        self,
        uri_template: str,
        description: str,
        mime_type: str = "application/json",
    ) -> Callable[[ResourceHandler], ResourceHandler]:
        def decorator(handler: ResourceHandler) -> ResourceHandler:
            self.add_resource(ResourceSpec(uri_template, description, mime_type, handler))
            return handler

        return decorator

    def build(self) -> Registry:
        self._built = True
        return Registry(
            tools=MappingProxyType(dict(self._tools)),
            resources=MappingProxyType(dict(self._resources)),
        )


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------
def parse_arguments(arguments: Union[str, Mapping[str, Any], None]) -> dict[str, Any]:
    """Accept arguments as a JSON string or an already-structured mapping."""
    if arguments is None or arguments == "":
        return {}
    if isinstance(arguments, str):
        arguments = json.loads(arguments)
    if not isinstance(arguments, Mapping):
        raise TypeError(f"Tool arguments must be an object, got {type(arguments).__name__}")
    return dict(arguments)


class Dispatcher:
    def __init__(self, registry: Registry) -> None:
        self.registry = registry

    def list_tools(self) -> list[dict[str, Any]]:
        return [
            {"name": spec.name, "description": spec.description, "input_schema": spec.input_schema}
            for spec in self.registry.tools.values()
        ]

    async def call_tool(self, name: str, arguments: Union[str, Mapping[str, Any], None] = None) -> ToolResult:
        """Validate ``arguments`` and run the named tool.

        Handler exceptions propagate untouched; handlers that want to
        report a failure as text return an error result instead.
        """
        try:
            parsed = parse_arguments(arguments)
        except (json.JSONDecodeError, TypeError) as exc:
            raise ValidationError(name, [{"loc": (), "msg": str(exc)}]) from exc
        spec = self.registry.tools.get(name)
        if spec is None:
            raise UnknownToolError(name)
        try:
            args = spec.args_model.model_validate(parsed)
        except PydanticValidationError as exc:
            raise ValidationError(name, exc.errors(include_url=False)) from exc
        logger.info("Calling tool %s", name)
        return await spec.handler(args)

    def list_resources(self) -> list[ResourceSpec]:
        return [spec for spec in self.registry.resources.values() if not spec.is_template]

    def list_resource_templates(self) -> list[ResourceSpec]:
        return [spec for spec in self.registry.resources.values() if spec.is_template]

    def resolve_resource(self, uri: str) -> tuple[ResourceSpec, dict[str, str]]:
        for spec in self.registry.resources.values():
            params = spec.match(uri)
            if params is not None:
                return spec, params
        raise UnknownResourceError(uri)

    async def read_resource(self, uri: str) -> ResourceContents:
        spec, params = self.resolve_resource(uri)
        logger.info("Reading resource %s", uri)
        text = await spec.handler(params)
        return ResourceContents(uri=uri, mime_type=spec.mime_type, text=text)
