"""Fixed-width field layouts.

A layout is an ordered tuple of named field widths. Slicing a line by a
layout yields trimmed field strings keyed by field name.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldSpec:
    """One fixed-width field.

    Attributes:
        name: Field name used in records and diagnostics.
        width: Character width of the field.
        scale: Implied decimal places for numeric fields.
    """

    name: str
    width: int
    scale: int = 0


@dataclass(frozen=True)
class RecordLayout:
    """Ordered fixed-width layout of one record family.

    Attributes:
        name: Layout name for diagnostics.
        fields: Ordered field specs starting at column zero.
        width: Declared total line width.
        min_width: Shortest accepted line; trailing fields past it may be missing.
    """

    name: str
    fields: tuple[FieldSpec, ...]
    width: int
    min_width: int

    def __post_init__(self) -> None:
        total = sum(spec.width for spec in self.fields)
        if total != self.width:
            raise ValueError(
                f"Layout '{self.name}' field widths sum to {total}, declared width is {self.width}."
            )
        if not 0 < self.min_width <= self.width:
            raise ValueError(f"Layout '{self.name}' has invalid min_width {self.min_width}.")

    def accepts_width(self, width: int) -> bool:
        """Return whether a line of this width can be sliced by the layout."""
        return self.min_width <= width <= self.width

    def spec(self, field_name: str) -> FieldSpec:
        """Return the spec of a named field."""
        for spec in self.fields:
            if spec.name == field_name:
                return spec
        raise KeyError(field_name)

    def offset(self, field_name: str) -> int:
        """Return the starting column of a named field."""
        position = 0
        for spec in self.fields:
            if spec.name == field_name:
                return position
            position += spec.width
        raise KeyError(field_name)


def slice_fields(text: str, layout: RecordLayout) -> dict[str, str]:
    """Slice a line into trimmed field values.

    Fields past the end of a short line read as empty strings.

    Args:
        text: Normalized line text.
        layout: Layout to slice by.

    Returns:
        Field values keyed by field name, stripped of padding.
    """
    values: dict[str, str] = {}
    position = 0
    for spec in layout.fields:
        values[spec.name] = text[position : position + spec.width].strip()
        position += spec.width
    return values
