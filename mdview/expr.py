from __future__ import annotations
import copy, itertools
from typing import Callable, Iterable
from mdview.dim import Const
from mdview.helpers import DEBUG, is_nested, get_shape, fully_flatten
from mdview.index import Axis, resolve_axis, lane_layout
from mdview.mapping import Mapping
from mdview.raw import Ref
from mdview.shape import Shape, into_shape, broadcast_shapes

class Expression:
  """Lazy, single-pass traversal in row-major order.

  Subclasses give a `shape` and random access through `_get`, which is what broadcasting
  needs. Iteration defaults to walking every index, subclasses override it when they can do better.
  """
  shape:Shape

  @property
  def rank(self) -> int: return self.shape.rank
  def dim(self, i:int) -> int: return self.shape.dim(i)
  def len(self) -> int: return self.shape.len()
  def is_empty(self) -> bool: return self.shape.is_empty()

  def _get(self, index:tuple[int, ...]): raise NotImplementedError
  def _expand(self, shape:Shape) -> Expression: return self if self.shape == shape else Expand(self, shape)
  def __iter__(self): return map(self._get, itertools.product(*map(range, self.shape)))

  def map(self, f:Callable) -> Map: return Map(self, f)
  def zip(self, other) -> Zip: return Zip(self, into_expr(other))
  def cloned(self) -> Map: return Map(self, copy.copy)
  def for_each(self, f:Callable) -> None:
    for x in self: f(x)
  def eval(self):
    from mdview.tensor import Tensor
    return Tensor.from_expr(self)

class Map(Expression):
  def __init__(self, expr:Expression, f:Callable): self.expr, self.f = expr, f
  @property
  def shape(self) -> Shape: return self.expr.shape
  def _get(self, index): return self.f(self.expr._get(index))
  def _expand(self, shape): return Map(self.expr._expand(shape), self.f)
  def __iter__(self): return map(self.f, self.expr)

class Zip(Expression):
  def __init__(self, a:Expression, b:Expression):
    self.shape = broadcast_shapes(a.shape, b.shape)
    if DEBUG >= 3 and not a.shape == b.shape: print(f"broadcast {a.shape}, {b.shape} -> {self.shape}")
    self.a, self.b = a._expand(self.shape), b._expand(self.shape)
  def _get(self, index): return self.a._get(index), self.b._get(index)
  def _expand(self, shape): return Zip(self.a._expand(shape), self.b._expand(shape))
  def __iter__(self): return zip(self.a, self.b)

class Expand(Expression):
  """Broadcasts any expression by mapping indices; views broadcast through stride 0 instead."""
  def __init__(self, expr:Expression, shape:Shape):
    assert broadcast_shapes(expr.shape, shape) == shape, f"Cannot broadcast shape {expr.shape} to {shape}"
    self.expr, self.shape = expr, shape
    self.pad = shape.rank - expr.rank
  def _get(self, index):
    return self.expr._get(tuple(0 if n == 1 else i for i, n in zip(index[self.pad:], self.expr.shape)))
  def _expand(self, shape): return Expand(self.expr, shape)

class AxisExpr(Expression):
  """Sub-views at each position along one axis."""
  def __init__(self, view, axis:Axis):
    self.view, self.axis = view, axis
    self.shape = Shape((view.shape[resolve_axis(axis, view.shape)],))
  def _get(self, index): return self.view.axis_at(self.axis, index[0])
  def __iter__(self): return (self.view.axis_at(self.axis, i) for i in range(self.dim(0)))

class Lanes(Expression):
  """Rank-1 views along one axis, for every index of the other axes."""
  def __init__(self, view, axis:Axis):
    ax = resolve_axis(axis, view.shape)
    strides = view.mapping.strides
    self.view, self.shape = view, view.shape.remove(ax)
    self.outer_strides = strides[:ax] + strides[ax+1:]
    self.lane = Mapping.new(lane_layout(axis, view.shape, view.layout), Shape((view.shape[ax],)), (strides[ax],))
  def _get(self, index): return self.view._derive(self.lane, sum(i * st for i, st in zip(index, self.outer_strides)))

class Refs(Expression):
  """Writable element references of a mutable view."""
  def __init__(self, view): self.view = view
  @property
  def shape(self) -> Shape: return self.view.shape
  def _get(self, index):
    ptr = self.view.as_mut_ptr()
    return Ref(ptr.buffer, ptr.offset + self.view.mapping.offset_unchecked(index))
  def __iter__(self):
    buffer = self.view.as_mut_ptr().buffer
    return (Ref(buffer, o) for o in self.view._offsets())

### Producers ###

class Fill(Expression):
  shape = Shape(())
  def __init__(self, value): self.value = value
  def _get(self, index): return self.value

class FillWith(Expression):
  shape = Shape(())
  def __init__(self, f:Callable): self.f = f
  def _get(self, index): return self.f()

class FromFn(Expression):
  def __init__(self, shape, f:Callable[[tuple[int, ...]], object]): self.shape, self.f = into_shape(shape), f
  def _get(self, index): return self.f(index)

def fill(value) -> Fill: return Fill(value)
def fill_with(f:Callable) -> FillWith: return FillWith(f)
def from_elem(shape, value) -> Expression: return Fill(value)._expand(into_shape(shape))
def from_fn(shape, f:Callable[[tuple[int, ...]], object]) -> FromFn: return FromFn(shape, f)

def into_expr(x) -> Expression:
  """Expressions pass through; owners, memoryviews, nested sequences, iterables and scalars are wrapped."""
  if isinstance(x, Expression): return x
  if hasattr(x, "into_expr"): return x.into_expr()
  from mdview.view import View
  if isinstance(x, memoryview): return View.from_memoryview(x)
  if isinstance(x, Iterable) and not is_nested(x) and not isinstance(x, (str, bytes)): x = list(x)
  if not is_nested(x): return View([x], ())
  return View(fully_flatten(x), tuple(map(Const, get_shape(x))))
