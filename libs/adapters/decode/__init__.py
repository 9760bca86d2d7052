from .fakes import ScriptedDecodeWorker

__all__ = ["ScriptedDecodeWorker"]
