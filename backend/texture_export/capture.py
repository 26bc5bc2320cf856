"""
Atlas-based capture of individual texture symbols.

The render engine is an external collaborator reached only through
``RenderCapability``. Every texture is isolated on the shared stage, anchored
at the document origin, rendered onto the fixed-size atlas and cropped back
out using the offset at which the renderer centres the document stage.
"""

import importlib
import logging
import math
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple, TypeVar

import numpy as np
from PIL import Image

from texture_export import config
from texture_export.errors import (
    TextureExportError,
    TextureRenderError,
    TextureResolutionError,
)
from texture_export.matcher import ExportedTexture

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Transparent magenta: never used for keying, the renderer supplies real alpha
DEFAULT_BACKGROUND = (255, 0, 255, 0)


@dataclass(frozen=True)
class Bounds:
    """Bounding box of a display object in native stage pixels."""
    x_min: float
    y_min: float
    width: float
    height: float


class StageContext(ABC):
    """Mutable root display container of a loaded movie."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every child from the stage."""

    @abstractmethod
    def set_background_color(self, rgba: Tuple[int, int, int, int]) -> None:
        ...

    @abstractmethod
    def instantiate(self, symbol_id: int) -> Optional[Any]:
        """Create a display object for a library symbol, or None if there is no such symbol."""

    @abstractmethod
    def add_child_at(self, display_object: Any, index: int) -> None:
        ...

    @abstractmethod
    def construct_frame(self) -> None:
        """Run one frame-construction pass so layout and bounds are up to date."""

    @abstractmethod
    def bounds(self, display_object: Any) -> Bounds:
        ...

    @abstractmethod
    def set_position(self, display_object: Any, x: float, y: float) -> None:
        ...


class RenderCapability(ABC):
    """
    Stateful render engine driving one stage per loaded movie.

    Stage access and rendering go through a single lock so that no two
    operations on the stage interleave.
    """

    def __init__(self):
        self._lock = threading.RLock()

    @abstractmethod
    def construct(self, document_bytes: bytes) -> Any:
        """Load a document and return a movie handle."""

    @abstractmethod
    def stage(self, movie: Any) -> StageContext:
        ...

    @abstractmethod
    def render(self, movie: Any) -> None:
        ...

    @abstractmethod
    def capture_frame(self, movie: Any) -> Optional[Any]:
        """Return the last rendered frame as an RGBA bitmap, or None."""

    @abstractmethod
    def movie_width(self, movie: Any) -> int:
        ...

    @abstractmethod
    def movie_height(self, movie: Any) -> int:
        ...

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        with self._lock:
            yield

    def with_stage(self, movie: Any, fn: Callable[[StageContext], T]) -> T:
        with self.exclusive():
            return fn(self.stage(movie))


def load_capability(path: str, render_width: int, render_height: int) -> RenderCapability:
    """
    Build a render backend from an import path of the form ``module:factory``.

    The factory is called with the atlas size and must return a RenderCapability.
    """
    module_name, _, attribute = path.partition(":")
    if not module_name or not attribute:
        raise TextureExportError(f"Renderer must be given as 'module:factory', got {path!r}")
    try:
        module = importlib.import_module(module_name)
        factory = getattr(module, attribute)
    except (ImportError, AttributeError) as e:
        raise TextureExportError(f"Unable to load renderer {path!r}: {e}") from e

    capability = factory(render_width, render_height)
    if not isinstance(capability, RenderCapability):
        raise TextureExportError(f"Renderer {path!r} did not return a RenderCapability")
    return capability


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def atlas_offset(render_width: int, render_height: int, movie_width: float, movie_height: float) -> Tuple[int, int]:
    """Position of the document origin inside the atlas (the stage is centred)."""
    return (
        _round_half_up((render_width - movie_width) / 2),
        _round_half_up((render_height - movie_height) / 2),
    )


def crop_atlas(atlas: np.ndarray, x: int, y: int, width: int, height: int) -> np.ndarray:
    """Cut a rectangle out of the atlas, clamped to its edges."""
    atlas_height, atlas_width = atlas.shape[:2]
    x0 = min(max(x, 0), atlas_width)
    y0 = min(max(y, 0), atlas_height)
    x1 = min(max(x + width, 0), atlas_width)
    y1 = min(max(y + height, 0), atlas_height)
    return atlas[y0:y1, x0:x1].copy()


@dataclass(frozen=True, eq=False)
class CapturedImage:
    texture: ExportedTexture
    image: np.ndarray = field(repr=False)
    x: int
    y: int
    width: int
    height: int


@dataclass
class CaptureBatch:
    """Results of one pass over a document's textures."""
    images: List[CapturedImage] = field(default_factory=list)
    errors: List[TextureExportError] = field(default_factory=list)


class TextureCapturer:
    """Renders textures one at a time onto the shared atlas and crops them."""

    def __init__(
        self,
        capability: RenderCapability,
        render_width: int = config.RENDER_WIDTH,
        render_height: int = config.RENDER_HEIGHT,
        background_color: Tuple[int, int, int, int] = DEFAULT_BACKGROUND,
        fail_fast: bool = False,
    ):
        self.capability = capability
        self.render_width = render_width
        self.render_height = render_height
        self.background_color = background_color
        self.fail_fast = fail_fast

    def capture_all(self, document_bytes: bytes, textures: Sequence[ExportedTexture]) -> CaptureBatch:
        """
        Capture every texture of a document in order.

        Resolution and render failures are collected per texture and the batch
        continues, unless ``fail_fast`` is set, in which case the first one is
        raised.
        """
        batch = CaptureBatch()
        if not textures:
            return batch

        movie = self.capability.construct(document_bytes)
        offset = atlas_offset(
            self.render_width,
            self.render_height,
            self.capability.movie_width(movie),
            self.capability.movie_height(movie),
        )
        logger.info(f"Capturing {len(textures)} textures, atlas offset {offset}")

        for texture in textures:
            try:
                batch.images.append(self.capture(movie, texture, offset))
            except (TextureResolutionError, TextureRenderError) as e:
                if self.fail_fast:
                    raise
                logger.error(str(e))
                batch.errors.append(e)
        return batch

    def capture(self, movie: Any, texture: ExportedTexture, offset: Tuple[int, int]) -> CapturedImage:
        class_name = texture.class_name.qualified_name
        if texture.symbol_id is None:
            raise TextureResolutionError(class_name)
        symbol_id = texture.symbol_id

        def reset_and_instantiate(stage: StageContext) -> Any:
            stage.clear()
            stage.set_background_color(self.background_color)
            display_object = stage.instantiate(symbol_id)
            if display_object is not None:
                stage.add_child_at(display_object, 0)
            return display_object

        display_object = self.capability.with_stage(movie, reset_and_instantiate)
        if display_object is None:
            raise TextureResolutionError(
                class_name, f"Symbol {symbol_id} of {class_name} could not be instantiated"
            )

        self.capability.with_stage(movie, lambda stage: stage.construct_frame())

        bounds = self.capability.with_stage(movie, lambda stage: stage.bounds(display_object))
        self.capability.with_stage(
            movie, lambda stage: stage.set_position(display_object, -bounds.x_min, -bounds.y_min)
        )
        width = _round_half_up(bounds.width)
        height = _round_half_up(bounds.height)
        if width <= 0 or height <= 0:
            raise TextureRenderError(class_name, f"empty bounds {bounds}")

        self.capability.with_stage(movie, lambda stage: stage.construct_frame())

        atlas = self._render(movie, class_name)
        x, y = offset
        image = crop_atlas(atlas, x, y, width, height)
        if image.shape[:2] != (height, width):
            raise TextureRenderError(
                class_name,
                f"crop {width}x{height} at {offset} does not fit in the "
                f"{self.render_width}x{self.render_height} atlas"
            )

        logger.debug(f"Captured {class_name} (symbol {symbol_id}) {width}x{height}")
        return CapturedImage(texture, image, x, y, width, height)

    def _render(self, movie: Any, class_name: str) -> np.ndarray:
        try:
            with self.capability.exclusive():
                self.capability.render(movie)
                bitmap = self.capability.capture_frame(movie)
        except TextureExportError:
            raise
        except Exception as e:
            raise TextureRenderError(class_name, f"render aborted: {e!r}") from e

        if bitmap is None:
            raise TextureRenderError(class_name, "no frame was captured")
        return self._as_atlas(bitmap, class_name)

    def _as_atlas(self, bitmap: Any, class_name: str) -> np.ndarray:
        if isinstance(bitmap, Image.Image):
            bitmap = np.asarray(bitmap.convert("RGBA"))
        if not isinstance(bitmap, np.ndarray):
            raise TextureRenderError(class_name, f"unexpected surface type {type(bitmap).__name__}")

        expected = (self.render_height, self.render_width, 4)
        if bitmap.shape != expected:
            raise TextureRenderError(
                class_name, f"unexpected surface shape {bitmap.shape}, expected {expected}"
            )
        return bitmap
