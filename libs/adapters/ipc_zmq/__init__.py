from .fakes import FakeEventPubPort, FakeEventSubPort, FakeScanCommandPort

__all__ = ["FakeScanCommandPort", "FakeEventPubPort", "FakeEventSubPort"]
