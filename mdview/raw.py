from __future__ import annotations
from dataclasses import dataclass
from typing import Any
from mdview.mapping import Mapping

@dataclass(frozen=True)
class Ptr:
  """Position in a borrowed buffer. Reads and writes are not bounds checked against any view."""
  buffer:Any
  offset:int
  writable:bool = False
  def read(self, i:int=0): return self.buffer[self.offset + i]
  def write(self, i:int, value):
    assert self.writable, "cannot write through a read-only pointer"
    self.buffer[self.offset + i] = value
  def add(self, count:int) -> Ptr: return Ptr(self.buffer, self.offset + count, self.writable)

class Ref:
  """A single writable element, the item type of mutable expressions."""
  __slots__ = ("buffer", "offset")
  def __init__(self, buffer, offset:int): self.buffer, self.offset = buffer, offset
  def get(self): return self.buffer[self.offset]
  def set(self, value): self.buffer[self.offset] = value
  def __eq__(self, x): return self.get() == (x.get() if isinstance(x, Ref) else x)
  __hash__ = None
  def __repr__(self): return f"Ref({self.get()!r})"

@dataclass(frozen=True)
class RawView:
  """The pointer and mapping pair behind every view."""
  ptr:Ptr
  mapping:Mapping
