from .fakes import FakeCameraAcquirer, FakeCameraHandle

__all__ = ["FakeCameraAcquirer", "FakeCameraHandle"]
