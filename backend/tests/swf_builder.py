"""
In-memory builders for SWF and ABC test documents, plus a deterministic
render backend that draws each symbol as a solid rectangle.
"""

import lzma
import struct
import zlib
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from texture_export.capture import Bounds, RenderCapability, StageContext

TEXTURES = "com.exported.textures"
BASE_NAMESPACE = "com.lachhh.flash"
BASE_CLASS = "FlashAnimationTexture"

PACKAGE_NAMESPACE = 0x16


def u30(value: int) -> bytes:
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _table(entries: Sequence[bytes]) -> bytes:
    if not entries:
        return u30(0)
    return u30(len(entries) + 1) + b"".join(entries)


class AbcBuilder:
    """Assembles a minimal ABC blob: constant pool, one empty method, instances."""

    def __init__(self):
        self.strings: List[str] = []
        self.namespaces: List[bytes] = []
        self.multinames: List[bytes] = []
        self.instances: List[bytes] = []

    def string(self, value: str) -> int:
        if value not in self.strings:
            self.strings.append(value)
        return self.strings.index(value) + 1

    def namespace(self, name: str, kind: int = PACKAGE_NAMESPACE) -> int:
        self.namespaces.append(bytes([kind]) + u30(self.string(name)))
        return len(self.namespaces)

    def raw_namespace(self, kind: int, string_index: int) -> int:
        self.namespaces.append(bytes([kind]) + u30(string_index))
        return len(self.namespaces)

    def multiname(self, payload: bytes) -> int:
        self.multinames.append(payload)
        return len(self.multinames)

    def qname(self, namespace: str, name: str, kind: int = PACKAGE_NAMESPACE) -> int:
        namespace_index = self.namespace(namespace, kind)
        return self.multiname(b"\x07" + u30(namespace_index) + u30(self.string(name)))

    def add_instance(self, name: int, super_name: int, traits: bytes = u30(0), flags: int = 0) -> None:
        self.instances.append(
            u30(name) + u30(super_name) + bytes([flags]) + u30(0) + u30(0) + traits
        )

    def add_class(self, namespace: str, name: str,
                  super_namespace: str = BASE_NAMESPACE, super_name: str = BASE_CLASS) -> None:
        self.add_instance(self.qname(namespace, name), self.qname(super_namespace, super_name))

    def build(self) -> bytes:
        strings = [u30(len(s.encode("utf-8"))) + s.encode("utf-8") for s in self.strings]
        out = struct.pack("<HH", 16, 46)
        out += u30(0) + u30(0) + u30(0)  # ints, uints, doubles
        out += _table(strings)
        out += _table(self.namespaces)
        out += u30(0)  # namespace sets
        out += _table(self.multinames)
        out += u30(1) + u30(0) + u30(0) + u30(0) + b"\x00"  # one method, no params
        out += u30(0)  # metadata
        out += u30(len(self.instances)) + b"".join(self.instances)
        out += b"".join(u30(0) + u30(0) for _ in self.instances)  # class infos
        out += u30(0) + u30(0)  # scripts, method bodies
        return out


def texture_abc(classes: Iterable[Tuple[str, str]]) -> bytes:
    builder = AbcBuilder()
    for namespace, name in classes:
        builder.add_class(namespace, name)
    return builder.build()


def _rect(width: int, height: int) -> bytes:
    values = (0, width * 20, 0, height * 20)
    nbits = max(v.bit_length() for v in values) + 1
    bits = format(nbits, "05b") + "".join(format(v, f"0{nbits}b") for v in values)
    bits += "0" * (-len(bits) % 8)
    return int(bits, 2).to_bytes(len(bits) // 8, "big")


def tag(code: int, payload: bytes = b"") -> bytes:
    if len(payload) < 0x3F:
        return struct.pack("<H", (code << 6) | len(payload)) + payload
    return struct.pack("<HI", (code << 6) | 0x3F, len(payload)) + payload


def file_attributes(as3: bool = True) -> bytes:
    return tag(69, struct.pack("<I", 0x08 if as3 else 0))


def symbol_class(links: Iterable[Tuple[int, str]], encoding: str = "utf-8") -> bytes:
    links = list(links)
    payload = struct.pack("<H", len(links))
    for symbol_id, name in links:
        payload += struct.pack("<H", symbol_id) + name.encode(encoding) + b"\x00"
    return tag(76, payload)


def do_abc(abc: bytes, name: str = "frame1", flags: int = 1) -> bytes:
    return tag(82, struct.pack("<I", flags) + name.encode("utf-8") + b"\x00" + abc)


def legacy_do_abc(abc: bytes) -> bytes:
    return tag(72, abc)


def end() -> bytes:
    return tag(0)


def build_swf(tags: Iterable[bytes], width: int = 400, height: int = 300,
              version: int = 10, compression: str = "FWS") -> bytes:
    body = _rect(width, height) + struct.pack("<HH", 24 << 8, 1) + b"".join(tags)
    header = compression.encode("ascii") + bytes([version]) + struct.pack("<I", 8 + len(body))
    if compression == "FWS":
        return header + body
    if compression == "CWS":
        return header + zlib.compress(body)
    if compression == "ZWS":
        raw = lzma.compress(body, format=lzma.FORMAT_ALONE)
        properties, data = raw[:5], raw[13:]
        return header + struct.pack("<I", len(data)) + properties + data
    raise ValueError(compression)


def texture_swf(
    classes: Iterable[Tuple[str, str]] = ((TEXTURES, "Foo"),),
    links: Optional[Iterable[Tuple[int, str]]] = ((5, f"{TEXTURES}.Foo"),),
    **kwargs
) -> bytes:
    tags = [file_attributes(), do_abc(texture_abc(classes))]
    if links is not None:
        tags.append(symbol_class(links))
    tags.append(end())
    return build_swf(tags, **kwargs)


class FakeSymbol:
    def __init__(self, bounds: Bounds, color: Tuple[int, int, int, int] = (255, 0, 0, 255)):
        self.bounds = bounds
        self.color = color


class FakeDisplayObject:
    def __init__(self, symbol_id: int, symbol: FakeSymbol):
        self.symbol_id = symbol_id
        self.symbol = symbol
        self.x = 0.0
        self.y = 0.0


class FakeStage(StageContext):
    def __init__(self, renderer: "FakeRenderer"):
        self.renderer = renderer
        self.children: List[FakeDisplayObject] = []
        self.background = None
        self.settled = False

    def clear(self):
        self.renderer.calls.append("clear")
        self.children = []

    def set_background_color(self, rgba):
        self.renderer.calls.append("background")
        self.background = rgba

    def instantiate(self, symbol_id):
        self.renderer.calls.append(f"instantiate:{symbol_id}")
        symbol = self.renderer.symbols.get(symbol_id)
        return FakeDisplayObject(symbol_id, symbol) if symbol else None

    def add_child_at(self, display_object, index):
        self.renderer.calls.append(f"add:{index}")
        self.children.insert(index, display_object)
        self.settled = False

    def construct_frame(self):
        self.renderer.calls.append("construct_frame")
        self.settled = True

    def bounds(self, display_object):
        self.renderer.calls.append("bounds")
        if not self.settled:
            raise RuntimeError("bounds read before frame construction")
        b = display_object.symbol.bounds
        return Bounds(display_object.x + b.x_min, display_object.y + b.y_min, b.width, b.height)

    def set_position(self, display_object, x, y):
        self.renderer.calls.append(f"move:{x:g},{y:g}")
        display_object.x = x
        display_object.y = y
        self.settled = False


class FakeRenderer(RenderCapability):
    """Draws every stage child as a solid rectangle, with the stage centred in the atlas."""

    def __init__(self, render_width: int, render_height: int,
                 symbols: Optional[Dict[int, FakeSymbol]] = None,
                 movie_size: Tuple[int, int] = (400, 300),
                 failing_symbols: Sequence[int] = (),
                 capture_none: bool = False):
        super().__init__()
        self.render_width = render_width
        self.render_height = render_height
        self.symbols = symbols if symbols is not None else {5: FakeSymbol(Bounds(-10, -20, 30, 40))}
        self.movie_size = movie_size
        self.failing_symbols = set(failing_symbols)
        self.capture_none = capture_none
        self.calls: List[str] = []
        self.constructed: List[bytes] = []
        self._stage = FakeStage(self)
        self._frame = None

    def construct(self, document_bytes):
        self.constructed.append(document_bytes)
        return "movie"

    def stage(self, movie):
        return self._stage

    def render(self, movie):
        self.calls.append("render")
        stage = self._stage
        if not stage.settled:
            raise RuntimeError("render before frame construction")
        atlas = np.zeros((self.render_height, self.render_width, 4), dtype=np.uint8)
        offset_x = (self.render_width - self.movie_size[0]) // 2
        offset_y = (self.render_height - self.movie_size[1]) // 2
        for child in stage.children:
            if child.symbol_id in self.failing_symbols:
                raise RuntimeError(f"renderer aborted on symbol {child.symbol_id}")
            b = child.symbol.bounds
            x = int(offset_x + child.x + b.x_min)
            y = int(offset_y + child.y + b.y_min)
            atlas[max(y, 0):y + int(b.height), max(x, 0):x + int(b.width)] = child.symbol.color
        self._frame = atlas

    def capture_frame(self, movie):
        self.calls.append("capture")
        return None if self.capture_none else self._frame

    def movie_width(self, movie):
        return self.movie_size[0]

    def movie_height(self, movie):
        return self.movie_size[1]


def make_fake_renderer(render_width: int, render_height: int) -> FakeRenderer:
    return FakeRenderer(render_width, render_height)
