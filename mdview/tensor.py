from __future__ import annotations
from typing import Callable
from mdview.dim import Const
from mdview.expr import Expression, into_expr, from_elem, from_fn
from mdview.helpers import get_shape, fully_flatten
from mdview.layout import Dense
from mdview.mapping import Mapping
from mdview.raw import Ptr, RawView
from mdview.shape import Shape, into_shape
from mdview.view import View, ViewMut

class Tensor:
  """Owned dense row-major array with a runtime shape. Its views borrow `buffer`."""
  def __init__(self, buffer:list, shape=None):
    self.buffer = buffer
    self._shape = into_shape(len(buffer) if shape is None else shape)
    assert self._shape.len() == len(buffer), f"buffer of length {len(buffer)} does not match shape {self._shape}"

  @classmethod
  def from_expr(cls, expr) -> Tensor:
    expr = into_expr(expr)
    return cls(list(expr), expr.shape)
  @classmethod
  def from_nested(cls, x) -> Tensor: return cls(fully_flatten(x), get_shape(x))
  @classmethod
  def from_elem(cls, shape, value) -> Tensor: return cls.from_expr(from_elem(shape, value).cloned())
  @classmethod
  def from_fn(cls, shape, f:Callable[[tuple[int, ...]], object]) -> Tensor: return cls.from_expr(from_fn(shape, f))

  @property
  def shape(self) -> Shape: return self._shape
  @property
  def rank(self) -> int: return self._shape.rank
  def len(self) -> int: return len(self.buffer)
  def __len__(self): return len(self.buffer)

  def raw(self) -> RawView: return RawView(Ptr(self.buffer, 0, True), Mapping.new(Dense, self._shape))
  def view(self) -> View: return View.from_raw(self.raw())
  def view_mut(self) -> ViewMut: return ViewMut.from_raw(self.raw())
  def into_expr(self) -> Expression: return self.view()
  def into_vec(self) -> list: return self.buffer

  def __iter__(self): return iter(self.buffer)
  def __getitem__(self, key): return self.view()[key]
  def __setitem__(self, key, value): self.view_mut()[key] = value
  def __eq__(self, x):
    if isinstance(x, Tensor): x = x.view()
    return self.view() == x
  __hash__ = None
  def __repr__(self): return f"{type(self).__name__}({self.view().to_nested()!r}, shape={self._shape!r})"

class Array(Tensor):
  """Owner whose dimensions are all fixed."""
  def __init__(self, buffer:list, shape=None):
    shape = into_shape(len(buffer) if shape is None else shape)
    super().__init__(buffer, Shape(Const(d.size) for d in shape.dims))
