from .fakes import FakeDrawContext, FakeSurface
from .pillow import PillowSurface, draw_outline
from .viewport import FixedViewport

__all__ = ["PillowSurface", "draw_outline", "FixedViewport", "FakeSurface", "FakeDrawContext"]
