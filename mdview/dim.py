from __future__ import annotations
from mdview.helpers import is_int

class ConstMetaClass(type):
  const_cache:dict[int, Const] = {}
  def __call__(cls, size:int):
    if is_int(size) and (ret := ConstMetaClass.const_cache.get(size)) is not None: return ret
    ConstMetaClass.const_cache[size] = ret = super().__call__(size)
    return ret

class Dim:
  """One axis length. `Const` sizes are fixed and shared, `Dyn` sizes are carried at runtime."""
  __slots__ = ()
  size:int
  is_const:bool = False
  def __index__(self): return self.size
  def __int__(self): return self.size
  def __eq__(self, x): return self.size == (x.size if isinstance(x, Dim) else x)
  def __hash__(self): return hash(self.size)

class Const(Dim, metaclass=ConstMetaClass):
  __slots__ = ("size",)
  is_const = True
  def __init__(self, size:int):
    assert is_int(size) and size >= 0, f"Const dimension must be a non-negative int, got {size!r}"
    self.size = size
  def __repr__(self): return f"Const({self.size})"

class Dyn(Dim):
  __slots__ = ("size",)
  def __init__(self, size:int):
    assert is_int(size) and size >= 0, f"Dyn dimension must be a non-negative int, got {size!r}"
    self.size = size
  def __repr__(self): return f"Dyn({self.size})"

def into_dim(x:Dim|int) -> Dim:
  if isinstance(x, Dim): return x
  return Dyn(x)
