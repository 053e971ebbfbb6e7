"""Render emission plans into Python source with libcst.

Each generated namespace becomes one class of static helpers. Overload sets
are rendered as ``typing.overload`` stubs followed by one implementation that
binds its arguments with ``defaultsmith.bind_prefix`` and dispatches on how
many leading parameters were supplied.
"""

from __future__ import annotations

import builtins
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

import libcst as cst

from defaultsmith.engine.literals import escape_string
from defaultsmith.engine.model import (
    BuilderSpec,
    CallableSpec,
    DefaultExpression,
    FactoryExpression,
    FieldExpression,
    LiteralExpression,
    OverloadSet,
    ParameterSpec,
    TypeKind,
)
from defaultsmith.engine.orchestrator import NamespaceResult

HEADER = "# Generated by defaultsmith. Do not modify."

_CONSTANTS = frozenset({"None", "True", "False"})

_NARROWING = {TypeKind.BYTE: "c_int8", TypeKind.SHORT: "c_int16"}
_ZERO_VALUES = {
    TypeKind.BYTE: "0",
    TypeKind.SHORT: "0",
    TypeKind.INT: "0",
    TypeKind.LONG: "0",
    TypeKind.FLOAT: "0.0",
    TypeKind.DOUBLE: "0.0",
    TypeKind.BOOLEAN: "False",
    TypeKind.CHAR: '"\\x00"',
}


def output_path(source: Path, suffix: str = "_defaults") -> Path:
    if source.stem == "__init__":
        return source.with_name(f"{source.parent.name}{suffix}.py")
    return source.with_name(f"{source.stem}{suffix}.py")


class _Qualifier(cst.CSTTransformer):
    """Prefix free names with the module they were written in."""

    def __init__(self, module: str) -> None:
        super().__init__()
        self.module = module
        self._skip: set[int] = set()

    def visit_Attribute(self, node: cst.Attribute) -> bool:
        self._skip.add(id(node.attr))
        return True

    def visit_Arg(self, node: cst.Arg) -> bool:
        if node.keyword is not None:
            self._skip.add(id(node.keyword))
        return True

    def visit_Lambda(self, node: cst.Lambda) -> bool:
        return False

    def leave_Name(self, original_node: cst.Name, updated_node: cst.Name) -> cst.BaseExpression:
        name = original_node.value
        if id(original_node) in self._skip or not self.module:
            return updated_node
        if name in _CONSTANTS or hasattr(builtins, name):
            return updated_node
        return cst.parse_expression(f"{self.module}.{name}")


@dataclass
class ModuleRenderer:
    warnings: list[str] = field(default_factory=list)
    imports: set[str] = field(default_factory=set)
    uses_overload: bool = False
    uses_ctypes: bool = False
    uses_required: bool = False
    uses_bind: bool = False

    def _qualified(self, text: str, module: str, *, what: str) -> str | None:
        try:
            expression = cst.parse_expression(text)
        except cst.ParserSyntaxError as exc:
            self.warnings.append(f"Failed to parse {what} '{text}': {exc}")
            return None
        if module:
            self.imports.add(module)
        return cst.Module(body=[]).code_for_node(expression.visit(_Qualifier(module)))

    def annotation(self, text: str, module: str) -> str:
        if not text:
            return ""
        return self._qualified(text, module, what="type hint") or "object"

    def expression(self, expression: DefaultExpression, *, module: str, where: str) -> str:
        if isinstance(expression, (FieldExpression, FactoryExpression)):
            if expression.import_module:
                self.imports.add(expression.import_module)
            if isinstance(expression, FactoryExpression):
                return f"{expression.path}()"
            return expression.path
        return self.literal(expression, module=module, where=where)

    def literal(self, expression: LiteralExpression, *, module: str, where: str) -> str:
        value = expression.value
        kind = expression.kind
        if value is None:
            return "None"
        if kind is TypeKind.BOOLEAN:
            return "True" if value else "False"
        if kind in _NARROWING:
            self.uses_ctypes = True
            return f"ctypes.{_NARROWING[kind]}({value}).value"
        if kind in {TypeKind.INT, TypeKind.LONG}:
            return str(value)
        if kind in {TypeKind.FLOAT, TypeKind.DOUBLE}:
            number = float(value)  # type: ignore[arg-type]
            if math.isnan(number):
                return 'float("nan")'
            if math.isinf(number):
                return 'float("-inf")' if number < 0 else 'float("inf")'
            return repr(number)
        if kind in {TypeKind.STRING, TypeKind.CHAR}:
            return f'"{escape_string(str(value))}"'
        rendered = self._qualified(str(value), module, what=f"default for {where}")
        if rendered is None:
            self.warnings.append(f"Default for {where} emitted as a string literal.")
            return f'"{escape_string(str(value))}"'
        return rendered

    def _callee(self, target: CallableSpec, receiver: str | None) -> str:
        if receiver is not None:
            return f"{receiver}.{target.name}"
        if target.is_constructor and target.factory_name is None:
            return target.owner
        return f"{target.owner}.{target.factory_name or target.name}"

    def _returns(self, target: CallableSpec, module: str) -> str:
        if target.is_constructor:
            return target.owner
        if not target.returns_value:
            return "None"
        if not target.return_annotation:
            return ""
        return self.annotation(target.return_annotation, module)

    @staticmethod
    def _forward(call: str, target: CallableSpec, *, last: bool = True) -> list[str]:
        if target.is_constructor or target.returns_value:
            return [f"return {call}"]
        return [call] if last else [call, "return"]

    @staticmethod
    def _receiver(target: CallableSpec) -> str | None:
        if target.is_static or target.is_constructor:
            return None
        names = {param.name for param in target.parameters}
        receiver = "instance"
        while receiver in names:
            receiver = f"{receiver}_"
        return receiver

    def _signature(
        self,
        params: Sequence[ParameterSpec],
        *,
        receiver: str | None,
        owner_type: str,
        module: str,
    ) -> str:
        parts = [f"{receiver}: {owner_type}"] if receiver else []
        for param in params:
            hint = self.annotation(param.annotation, module)
            parts.append(f"{param.name}: {hint}" if hint else param.name)
        return ", ".join(parts)

    @staticmethod
    def _arguments(params: Sequence[ParameterSpec], values: Sequence[str]) -> str:
        out = []
        for param, value in zip(params, values):
            out.append(f"{param.name}={value}" if param.keyword_only else value)
        return ", ".join(out)

    def overloads(self, plan: OverloadSet, module: str) -> list[cst.BaseStatement]:
        target = plan.target
        name = target.helper_name
        receiver = self._receiver(target)
        returns = self._returns(target, module)
        arrow = f" -> {returns}" if returns else ""
        callee = self._callee(target, receiver)
        where = target.display_name
        if len(plan.variants) == 1:
            variant = plan.variants[0]
            signature = self._signature(
                variant.provided, receiver=receiver, owner_type=target.owner, module=module
            )
            values = [param.name for param in variant.provided]
            call = f"{callee}({self._arguments(target.parameters, values)})"
            lines = ["@staticmethod", f"def {name}({signature}){arrow}:"]
            lines.extend(f"    {line}" for line in self._forward(call, target))
            return [cst.parse_statement("\n".join(lines) + "\n")]
        self.uses_overload = True
        statements: list[cst.BaseStatement] = []
        for variant in plan.variants:
            signature = self._signature(
                variant.provided, receiver=receiver, owner_type=target.owner, module=module
            )
            statements.append(
                cst.parse_statement(
                    f"@overload\n@staticmethod\ndef {name}({signature}){arrow}: ...\n"
                )
            )
        self.uses_bind = True
        lead = f"{receiver}: {target.owner}, *args, **kwargs" if receiver else "*args, **kwargs"
        names = ", ".join(f'"{param.name}"' for param in target.parameters)
        if len(target.parameters) == 1:
            names += ","
        lines = [
            "@staticmethod",
            f"def {name}({lead}){arrow}:",
            f'    args = bind_prefix("{name}", ({names}), args, kwargs)',
        ]
        for variant in plan.variants:
            values = [f"args[{index}]" for index in range(variant.provided_count)]
            offset = variant.provided_count
            for param, expression in zip(target.parameters[offset:], variant.trailing_defaults):
                values.append(
                    self.expression(expression, module=module, where=f"{where}({param.name})")
                )
            call = f"{callee}({self._arguments(target.parameters, values)})"
            lines.append(f"    if len(args) == {variant.provided_count}:")
            lines.extend(f"        {line}" for line in self._forward(call, target, last=False))
        low = plan.variants[0].provided_count
        high = plan.variants[-1].provided_count
        lines.append(
            f'    raise TypeError(f"{name}() takes from {low} to {high} arguments '
            f'but {{len(args)}} were given")'
        )
        statements.append(cst.parse_statement("\n".join(lines) + "\n"))
        return statements

    def builder(self, plan: BuilderSpec, namespace: str, module: str) -> list[cst.BaseStatement]:
        target = plan.target
        receiver = self._receiver(target)
        returns = self._returns(target, module)
        arrow = f" -> {returns}" if returns else ""
        builder_type = f"{namespace}.{plan.builder_name}"
        where = target.display_name
        init_params = f"self, {receiver}: {target.owner}" if receiver else "self"
        init_lines = [f"def __init__({init_params}) -> None:"]
        if receiver:
            init_lines.append(f"    self._{receiver} = {receiver}")
        for item in plan.fields:
            hint = self.annotation(item.annotation, module)
            if item.default_expression is not None:
                value = self.expression(
                    item.default_expression, module=module, where=f"{where}({item.name})"
                )
            elif item.type.is_primitive:
                value = _ZERO_VALUES.get(item.type.kind, "None")
            else:
                value = "None"
                hint = f"{hint} | None" if hint else hint
            slot = f"self._{item.name}: {hint}" if hint else f"self._{item.name}"
            init_lines.append(f"    {slot} = {value}")
        if len(init_lines) == 1:
            init_lines.append("    pass")
        body: list[cst.BaseStatement] = [
            cst.parse_statement(f'"""Builder for {target.owner} with named parameters."""\n'),
            cst.parse_statement("\n".join(init_lines) + "\n"),
        ]
        for item in plan.fields:
            hint = self.annotation(item.annotation, module)
            param = f"{item.name}: {hint}" if hint else item.name
            body.append(
                cst.parse_statement(
                    f"def {item.name}(self, {param}) -> {builder_type}:\n"
                    f"    self._{item.name} = {item.name}\n"
                    "    return self\n"
                )
            )
        terminal = plan.terminal_kind.value
        lines = [f"def {terminal}(self){arrow}:"]
        for item in plan.fields:
            if item.validated:
                self.uses_required = True
                lines.append(f"    if self._{item.name} is None:")
                lines.append(f'        raise RequiredFieldUnset("{item.name}")')
        owner = f"self._{receiver}" if receiver else None
        callee = self._callee(target, owner)
        values = [f"self._{item.name}" for item in plan.fields]
        call = f"{callee}({self._arguments(target.parameters, values)})"
        lines.extend(f"    {line}" for line in self._forward(call, target))
        body.append(cst.parse_statement("\n".join(lines) + "\n"))
        builder_class = cst.ClassDef(
            name=cst.Name(plan.builder_name),
            body=cst.IndentedBlock(body=_spaced(body)),
        )
        entry = target.helper_name
        entry_params = f"{receiver}: {target.owner}" if receiver else ""
        entry_args = receiver or ""
        entry_point = cst.parse_statement(
            "@staticmethod\n"
            f"def {entry}({entry_params}) -> {builder_type}:\n"
            f"    return {builder_type}({entry_args})\n"
        )
        return [builder_class, entry_point]

    def namespace(self, result: NamespaceResult) -> cst.ClassDef | None:
        plans = result.plans
        if not plans:
            return None
        if result.owner_module:
            self.imports.add(result.owner_module)
        module = result.owner_module
        body: list[cst.BaseStatement] = [
            cst.parse_statement(f'"""Generated default helpers for {result.owner}."""\n')
        ]
        for plan in plans:
            if isinstance(plan, OverloadSet):
                body.extend(self.overloads(plan, module))
            else:
                body.extend(self.builder(plan, result.name, module))
        return cst.ClassDef(
            name=cst.Name(result.name),
            body=cst.IndentedBlock(body=_spaced(body)),
        )

    def _import_lines(self) -> list[cst.BaseStatement]:
        lines = [
            cst.parse_statement("from __future__ import annotations\n").with_changes(
                leading_lines=[cst.EmptyLine()]
            )
        ]
        stdlib = []
        if self.uses_ctypes:
            stdlib.append(cst.parse_statement("import ctypes\n"))
        if self.uses_overload:
            stdlib.append(cst.parse_statement("from typing import overload\n"))
        local = [cst.parse_statement(f"import {name}\n") for name in sorted(self.imports)]
        runtime = []
        if self.uses_required:
            runtime.append("RequiredFieldUnset")
        if self.uses_bind:
            runtime.append("bind_prefix")
        if runtime:
            names = ", ".join(runtime)
            local.append(cst.parse_statement(f"from defaultsmith import {names}\n"))
        for group in (stdlib, local):
            if group:
                group[0] = group[0].with_changes(leading_lines=[cst.EmptyLine()])
                lines.extend(group)
        return lines

    def render(self, source_module: str, namespaces: Sequence[NamespaceResult]) -> str:
        classes = [node for node in (self.namespace(ns) for ns in namespaces) if node is not None]
        body: list[cst.BaseStatement] = [
            cst.parse_statement(f'"""Default helpers for {source_module}."""\n'),
            *self._import_lines(),
        ]
        for node in classes:
            body.append(
                node.with_changes(leading_lines=[cst.EmptyLine(), cst.EmptyLine()])
            )
        module = cst.Module(
            body=body,
            header=[cst.EmptyLine(comment=cst.Comment(HEADER))],
        )
        return module.code


def _spaced(statements: list[cst.BaseStatement]) -> list[cst.BaseStatement]:
    return [
        statement
        if index == 0
        else statement.with_changes(leading_lines=[cst.EmptyLine(indent=False)])
        for index, statement in enumerate(statements)
    ]


def render_module(source_module: str, namespaces: Sequence[NamespaceResult]) -> str:
    return ModuleRenderer().render(source_module, namespaces)


def write_module(path: Path, code: str, *, dry_run: bool = False) -> bool:
    """Write ``code`` to ``path`` unless unchanged; returns whether it differs."""
    try:
        current = path.read_text(encoding="utf-8")
    except OSError:
        current = None
    if current == code:
        return False
    if not dry_run:
        path.write_text(code, encoding="utf-8")
    return True
