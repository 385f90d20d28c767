from __future__ import annotations

class Layout:
  """Memory layout marker. Layouts are used as classes, never instantiated."""
  is_dense:bool = False
  def __init__(self): raise TypeError(f"{type(self).__name__} is a layout marker and cannot be instantiated")
  @classmethod
  def keep_if(cls, preserved:bool) -> type[Layout]: return cls if preserved else Strided

class Strided(Layout):
  """Explicit stride per axis."""

class Dense(Strided):
  """Contiguous row-major memory, the last axis has unit stride."""
  is_dense = True
