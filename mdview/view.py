from __future__ import annotations
import copy, itertools, warnings
from typing import Callable, Iterable
from mdview.dim import Const, Dyn
from mdview.expr import Expression, AxisExpr, Lanes, Refs, into_expr
from mdview.helpers import DEBUG, is_int, tupled
from mdview.index import Axis, Rows, Cols
from mdview.layout import Layout, Dense, Strided
from mdview.mapping import Mapping, DenseMapping, StridedMapping
from mdview.raw import Ptr, RawView
from mdview.shape import Shape, into_shape

class View(Expression):
  """Read-only multidimensional view over borrowed memory.

  The buffer is any indexable sequence (list, array.array, bytearray, memoryview, ...). A view never
  owns or resizes it: the owner must outlive the view and keep its length while views exist.
  Every transform returns a new view over the same buffer.
  """
  writable = False

  def __init__(self, buffer, shape=None, strides:tuple[int, ...]|None=None, offset:int=0):
    shape = into_shape(len(buffer) - offset if shape is None else shape)
    mapping = Mapping.new(Dense if strides is None else Strided, shape, strides)
    self._check(buffer, mapping, offset)
    self._buffer, self._mapping, self._offset = buffer, mapping, offset

  @classmethod
  def _check(cls, buffer, mapping:Mapping, offset:int):
    assert is_int(offset) and offset >= 0, f"offset must be a non-negative int, got {offset!r}"
    if cls.writable:
      assert hasattr(buffer, "__setitem__") and not getattr(buffer, "readonly", False), f"buffer of type {type(buffer).__name__} is not writable"
    if (span := mapping.span()) is not None:
      assert 0 <= offset + span[0] and offset + span[1] < len(buffer), f"{mapping} at offset {offset} does not fit in buffer of length {len(buffer)}"
    if DEBUG >= 3: print(f"{cls.__name__} {mapping} at offset {offset}")

  @classmethod
  def new(cls, buffer, mapping:Mapping, offset:int=0) -> View:
    cls._check(buffer, mapping, offset)
    return cls.new_unchecked(buffer, mapping, offset)

  @classmethod
  def new_unchecked(cls, buffer, mapping:Mapping, offset:int=0) -> View:
    """Creates a view without validating that the mapping fits in the buffer."""
    view = cls.__new__(cls)
    view._buffer, view._mapping, view._offset = buffer, mapping, offset
    return view

  @classmethod
  def from_raw(cls, raw:RawView) -> View:
    assert raw.ptr.writable or not cls.writable, "cannot create a mutable view from a read-only pointer"
    return cls.new_unchecked(raw.ptr.buffer, raw.mapping, raw.ptr.offset)

  @classmethod
  def from_memoryview(cls, mv:memoryview) -> View:
    """Zero-copy view over a C-contiguous memoryview, with the memoryview's shape as fixed dims."""
    assert mv.c_contiguous, "memoryview must be C-contiguous"
    flat = mv if mv.ndim == 1 else mv.cast("B").cast(mv.format)
    return cls.new(flat, DenseMapping(Shape(map(Const, mv.shape))))

  def raw(self) -> RawView: return RawView(Ptr(self._buffer, self._offset, self.writable), self._mapping)
  def _derive(self, mapping:Mapping, offset:int=0) -> View: return type(self).new_unchecked(self._buffer, mapping, self._offset + offset)
  def _offsets(self) -> Iterable[int]:
    if self.layout.is_dense: return range(self._offset, self._offset + self.len())
    base, strides = self._offset, self._mapping.strides
    return (base + sum(i * st for i, st in zip(index, strides)) for index in itertools.product(*map(range, self.shape)))

  ### Introspection ###

  @property
  def mapping(self) -> Mapping: return self._mapping
  @property
  def shape(self) -> Shape: return self._mapping.shape
  @property
  def layout(self) -> type[Layout]: return self._mapping.layout
  @property
  def rank(self) -> int: return self._mapping.rank
  def len(self) -> int: return self._mapping.len()
  def __len__(self): return self._mapping.len()
  def dim(self, i:int) -> int: return self._mapping.dim(i)
  def stride(self, i:int) -> int: return self._mapping.stride(i)
  def is_contiguous(self) -> bool: return self._mapping.is_contiguous()
  def is_empty(self) -> bool: return self._mapping.is_empty()
  def dims(self) -> tuple[int, ...]:
    assert self.shape.is_dyn_rank, f"dims() is only available for dynamic rank views, shape is {self.shape}"
    return self.shape.sizes
  def strides(self) -> tuple[int, ...]:
    assert not self.layout.is_dense, "strides() is only available for strided views, remap to Strided first"
    return self._mapping.strides
  def as_ptr(self) -> Ptr: return Ptr(self._buffer, self._offset)

  ### Element access ###

  def get(self, *index:int):
    return self._buffer[self._offset + self._mapping.offset(index)]
  def get_unchecked(self, *index:int):
    """Element access without bounds checks. An out-of-bounds index is undefined: any element, or an error."""
    return self._buffer[self._offset + self._mapping.offset_unchecked(index)]
  def _get(self, index): return self._buffer[self._offset + self._mapping.offset_unchecked(index)]
  def _element_index(self, key:tuple) -> tuple[int, ...]|None:
    if len(key) == self.rank and all(is_int(k) or isinstance(k, Const) for k in key): return tuple(map(int, key))
    return None
  def __getitem__(self, key):
    key = key if isinstance(key, tuple) else (key,)
    if (index := self._element_index(key)) is not None: return self.get(*index)
    return self.view(*key)

  ### Derived views ###

  def at(self, index:int) -> View: return self.axis_at(Const(0), index)
  def axis_at(self, axis:Axis, index:int) -> View:
    mapping, offset = self._mapping.axis_at(axis, index)
    return self._derive(mapping, offset)

  def _rank2(self, op:str) -> View:
    assert self.rank == 2, f"{op} requires rank 2, got rank {self.rank}"
    return self.remap((Dyn, Dyn)) if self.shape.is_dyn_rank else self
  def row(self, index:int) -> View: return self._rank2("row").view(index, slice(None))
  def col(self, index:int) -> View: return self._rank2("col").view(slice(None), index)
  def diag(self, index:int=0) -> View:
    """Diagonal view, `index` > 0 above and `index` < 0 below the main diagonal."""
    v = self._rank2("diag")
    rows, cols = v.shape.sizes
    assert is_int(index) and (index <= cols if index >= 0 else -index <= rows), f"diagonal {index} out of bounds for shape {v.shape}"
    s0, s1 = v.stride(0), v.stride(1)
    if index >= 0: offset, length = index * s1, min(rows, cols - index)
    else: offset, length = -index * s0, min(rows + index, cols)
    return v._derive(StridedMapping(Shape((Dyn(length),)), (s0 + s1,)), offset)

  def split_at(self, mid:int) -> tuple[View, View]: return self.split_axis_at(Const(0), mid)
  def split_axis_at(self, axis:Axis, mid:int) -> tuple[View, View]:
    first, second, offset = self._mapping.split_axis_at(axis, mid)
    return self._derive(first), self._derive(second, offset)

  def permute(self, *perm) -> View:
    """Reorders axes. An identity of `Const` axes keeps the layout, any other order is strided."""
    return self._derive(self._mapping.permute(perm[0] if len(perm) == 1 and isinstance(perm[0], (tuple, list)) else perm))
  def transpose(self) -> View: return self._derive(self._mapping.transpose())
  def reorder(self) -> View:
    warnings.warn("reorder() is deprecated, use transpose() instead", DeprecationWarning, stacklevel=2)
    return self.transpose()
  def reshape(self, *shape) -> View:
    """Reshaped view. At most one dimension may be -1 and is then inferred from the length."""
    return self._derive(self._mapping.reshape(shape[0] if len(shape) == 1 else shape))
  def flatten(self) -> View: return self.reshape((self.len(),))
  def remap(self, shape=None, layout:type[Layout]|None=None) -> View: return self._derive(self._mapping.remap(shape, layout))
  def view(self, *indices) -> View:
    mapping, offset = self._mapping.index(indices)
    return self._derive(mapping, offset)

  ### Expressions ###

  def expr(self) -> View: return View.new_unchecked(self._buffer, self._mapping, self._offset)
  def iter(self): return iter(self)
  def __iter__(self): return map(self._buffer.__getitem__, self._offsets())
  def _expand(self, shape:Shape) -> View: return self if self.shape == shape else self._derive(self._mapping.expand(shape))
  def axis_expr(self, axis:Axis) -> AxisExpr: return AxisExpr(self, axis)
  def outer_expr(self) -> AxisExpr: return self.axis_expr(Const(0))
  def lanes(self, axis:Axis) -> Lanes: return Lanes(self, axis)
  def rows(self) -> Lanes: return self.lanes(Rows)
  def cols(self) -> Lanes: return self.lanes(Cols)
  def apply(self, f:Callable) -> Expression: return self.expr().map(f)
  def zip_with(self, other, f:Callable) -> Expression: return self.expr().zip(other).map(lambda xy: f(*xy))

  def contains(self, value) -> bool:
    if self.layout.is_dense: return value in itertools.islice(self._buffer, self._offset, self._offset + self.len())
    if self.rank < 2: return any(x == value for x in self)
    return any(x.contains(value) for x in self.outer_expr())
  def __contains__(self, value): return self.contains(value)

  ### Export ###

  def to_vec(self) -> list: return list(self.cloned())
  def to_nested(self):
    if self.rank == 0: return copy.copy(self.get())
    if self.rank == 1: return list(self.cloned())
    return [x.to_nested() for x in self.outer_expr()]
  def to_tensor(self):
    from mdview.tensor import Tensor
    return Tensor.from_expr(self.cloned())
  def to_array(self):
    from mdview.tensor import Array
    assert self.shape.is_const, f"to_array() requires fixed dimensions, shape is {self.shape}"
    return Array.from_expr(self.cloned())
  def tensor(self, *indices): return self.view(*indices).to_tensor()
  def array(self, *indices): return self.view(*indices).to_array()

  def as_memoryview(self) -> memoryview:
    """Zero-copy shaped memoryview of a dense view over buffer-protocol memory."""
    assert self.layout.is_dense, "only dense views can be exported as a memoryview"
    assert not self.is_empty(), "cannot export an empty view as a memoryview"
    try: mv = memoryview(self._buffer)
    except TypeError as e: raise AssertionError(f"buffer of type {type(self._buffer).__name__} does not support the buffer protocol") from e
    flat = mv if mv.ndim == 1 else mv.cast("B").cast(mv.format)
    mv = flat[self._offset:self._offset + self.len()].cast("B").cast(flat.format, list(self.shape.sizes))
    return mv if self.writable else mv.toreadonly()

  def __eq__(self, x):
    if not isinstance(x, (Expression, list, tuple)) and not hasattr(x, "into_expr"): return NotImplemented
    x = into_expr(x)
    return self.shape == x.shape and all(a == b for a, b in zip(self, x))
  __hash__ = None
  def __repr__(self): return f"{type(self).__name__}({self.to_nested()!r}, shape={self.shape!r}, layout={self.layout.__name__})"

class ViewMut(View):
  """Mutable view. While it is in use no other view may access the same elements."""
  writable = True

  def as_mut_ptr(self) -> Ptr: return Ptr(self._buffer, self._offset, True)
  def set(self, index, value):
    self._buffer[self._offset + self._mapping.offset(tupled(index))] = value
  def set_unchecked(self, index, value):
    """Element write without bounds checks. An out-of-bounds index is undefined."""
    self._buffer[self._offset + self._mapping.offset_unchecked(tupled(index))] = value
  def __setitem__(self, key, value):
    key = key if isinstance(key, tuple) else (key,)
    if (index := self._element_index(key)) is not None: self.set(index, value)
    else: self.view(*key).assign(value)

  def expr_mut(self) -> Refs: return Refs(self)
  def iter_mut(self): return iter(self.expr_mut())
  def fill(self, value): self.expr_mut().for_each(lambda x: x.set(copy.copy(value)))
  def fill_with(self, f:Callable): self.expr_mut().for_each(lambda x: x.set(f()))
  def assign(self, source):
    """Copies `source` into this view, broadcasting it to this view's shape."""
    source = into_expr(source)
    zipped = self.expr_mut().zip(source)
    assert zipped.shape == self.shape, f"Cannot assign expression of shape {source.shape} to view of shape {self.shape}"
    zipped.for_each(lambda xy: xy[0].set(copy.copy(xy[1])))
