"""Handle ids: the string key naming one belt or pipe port on a node.

A handle id is "{direction}-{form}-{type}-{index}", e.g. "left-solid-in-0".
The same string is used as the edge's sourceHandle/targetHandle, which is
how edges are joined to node ports.
"""

from dataclasses import dataclass

from errors import MalformedHandle

DIRECTIONS = ("left", "top", "right", "bottom")
FORMS = ("solid", "fluid")
PORT_TYPES = ("in", "out")
SLOT_INDEXES = (0, 1, 2, 3)


@dataclass(frozen=True)
class Handle:
    """a decoded handle id"""

    direction: str
    form: str
    port_type: str
    index: int

    @property
    def handle_id(self) -> str:
        """The canonical string form of this handle."""
        return encode_handle_id(self.direction, self.form, self.port_type, self.index)


def encode_handle_id(direction: str, form: str, port_type: str, index: int) -> str:
    """Join the four handle fields into a handle id.

    Args:
        direction: left, top, right or bottom
        form: solid or fluid
        port_type: in or out
        index: slot index on that side (0-3)

    Returns:
        handle id string such as "right-fluid-out-1"
    """
    return f"{direction}-{form}-{port_type}-{index}"


def _parse_index(index_str: str, validate: bool):
    """Convert the slot part of a handle id to int.

    Precondition:
        index_str is the fourth part of a split handle id

    Postcondition:
        returns an int when index_str is a base-10 integer
        otherwise raises MalformedHandle if validate, else returns index_str unchanged
    """
    try:
        return int(index_str, 10)
    except ValueError as exc:
        if validate:
            raise MalformedHandle(f"Invalid handle index '{index_str}'") from exc
        return index_str


def split_handle_id(handle_id: str, validate: bool = False) -> Handle:
    """Decode a handle id into its fields.

    Precondition:
        handle_id is a string

    Postcondition:
        returns Handle with the parsed fields
        if validate, every field is checked against its allowed values
        without validate, parsing is best-effort (trusted ids from the graph)

    Args:
        handle_id: string like "left-solid-in-0"
        validate: raise on malformed ids instead of returning partial data

    Returns:
        decoded Handle

    Raises:
        MalformedHandle: if validate and the id is not well formed
    """
    parts = handle_id.split("-")
    if validate and len(parts) != 4:
        raise MalformedHandle(f"Invalid handle id '{handle_id}'")
    # pad so that a short id still unpacks on the trusted path
    parts = (parts + ["", "", "", ""])[:4]
    direction, form, port_type, index_str = parts
    index = _parse_index(index_str, validate)

    if validate:
        if direction not in DIRECTIONS:
            raise MalformedHandle(f"Invalid handle direction '{direction}'")
        if form not in FORMS:
            raise MalformedHandle(f"Invalid handle form '{form}'")
        if port_type not in PORT_TYPES:
            raise MalformedHandle(f"Invalid handle type '{port_type}'")
        if index not in SLOT_INDEXES:
            raise MalformedHandle(f"Invalid handle index '{index}'")

    return Handle(direction, form, port_type, index)
