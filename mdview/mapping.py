from __future__ import annotations
import functools, itertools, operator
from dataclasses import dataclass
from mdview.dim import Dyn, Const
from mdview.helpers import DEBUG, prod, tupled, is_int, all_instance
from mdview.index import FULL, Axis, resolve_axis, resolve_indices, split_layout, permute_layout, transpose_layout
from mdview.layout import Layout, Dense, Strided
from mdview.shape import Shape, resolve_shape, remap_shape, broadcast_shapes

@functools.lru_cache(maxsize=None)
def canonicalize_strides(shape:tuple[int, ...], strides:tuple[int, ...]) -> tuple[int, ...]:
  return tuple(0 if s == 1 else st for s, st in zip(shape, strides))

@functools.lru_cache(maxsize=None)
def strides_for_shape(shape:tuple[int, ...]) -> tuple[int, ...]:
  if not shape: return ()
  return tuple(itertools.accumulate(reversed(shape[1:]), operator.mul, initial=1))[::-1]

def reshape_strides(old_shape:tuple[int, ...], old_strides:tuple[int, ...], new_shape:tuple[int, ...]) -> tuple[int, ...]|None:
  """Strides that read `new_shape` out of the same memory, or None when the memory has no such form.

  Source axes are grouped until their extents match a group of target axes; a group may only
  be merged if its axes are stride-compatible (stride[i] == dim[i+1] * stride[i+1]).
  """
  if prod(old_shape) == 0: return strides_for_shape(new_shape)
  old = [(s, st) for s, st in zip(old_shape, old_strides) if s != 1]
  new_strides = [0] * len(new_shape)
  oi, oj, ni, nj = 0, 1, 0, 1
  while ni < len(new_shape) and oi < len(old):
    np_, op = new_shape[ni], old[oi][0]
    while np_ != op:
      if np_ < op: np_, nj = np_ * new_shape[nj], nj + 1
      else: op, oj = op * old[oj][0], oj + 1
    for k in range(oi, oj - 1):
      if old[k][1] != old[k+1][0] * old[k+1][1]: return None
    new_strides[nj-1] = old[oj-1][1]
    for k in range(nj - 1, ni, -1): new_strides[k-1] = new_strides[k] * new_shape[k]
    ni, oi = nj, oj
    nj, oj = nj + 1, oj + 1
  last_stride = new_strides[ni-1] if ni > 0 else 1
  for k in range(ni, len(new_shape)): new_strides[k] = last_stride
  return tuple(new_strides)

class Mapping:
  """Shape plus stride information. Offsets are relative to the base offset of the view."""
  layout:type[Layout]
  shape:Shape

  @staticmethod
  def new(layout:type[Layout], shape:Shape, strides:tuple[int, ...]|None=None) -> Mapping:
    if layout.is_dense: return DenseMapping(shape)
    return StridedMapping(shape, strides_for_shape(shape.sizes) if strides is None else tuple(strides))

  @property
  def strides(self) -> tuple[int, ...]: raise NotImplementedError
  @property
  def rank(self) -> int: return self.shape.rank
  def dim(self, i:int) -> int: return self.shape.dim(i)
  def len(self) -> int: return self.shape.len()
  def is_empty(self) -> bool: return self.shape.is_empty()
  def stride(self, i:int|Const) -> int:
    assert is_int(i) or isinstance(i, Const), f"dimension must be an int or Const, got {i!r}"
    assert 0 <= int(i) < self.rank, f"dimension {i} out of bounds for rank {self.rank}"
    return self.strides[int(i)]
  def is_contiguous(self) -> bool:
    if self.layout.is_dense or self.is_empty(): return True
    sizes = self.shape.sizes
    return canonicalize_strides(sizes, self.strides) == canonicalize_strides(sizes, strides_for_shape(sizes))

  def offset(self, index:tuple[int, ...]) -> int:
    assert len(index) == self.rank, f"index {index} does not match rank {self.rank}"
    for ax, (i, n) in enumerate(zip(index, self.shape.sizes)):
      assert is_int(i) and 0 <= i < n, f"index {i} out of bounds for axis {ax} with size {n}"
    return self.offset_unchecked(index)
  def offset_unchecked(self, index:tuple[int, ...]) -> int: return sum(i * st for i, st in zip(index, self.strides))
  def span(self) -> tuple[int, int]|None:
    if self.is_empty(): return None
    steps = [(n - 1) * st for n, st in zip(self.shape.sizes, self.strides)]
    return sum(min(0, s) for s in steps), sum(max(0, s) for s in steps)

  ### Transforms ###

  def reshape(self, shape) -> Mapping:
    new_shape = resolve_shape(shape, self.len())
    assert new_shape.len() == self.len(), f"array length must not change, reshaping {self.shape} to {new_shape}"
    if DEBUG >= 2: print(f"reshape {self.shape} -> {new_shape} ({self.layout.__name__})")
    if self.layout.is_dense: return DenseMapping(new_shape)
    strides = reshape_strides(self.shape.sizes, self.strides, new_shape.sizes)
    assert strides is not None, f"memory layout with shape {self.shape} and strides {self.strides} is not compatible with shape {new_shape}"
    return StridedMapping(new_shape, strides)

  def permute(self, perm) -> Mapping:
    perm = tupled(perm)
    assert all(is_int(p) or isinstance(p, Const) for p in perm), f"permutation must contain ints or Const axes, got {perm}"
    axes = tuple(map(int, perm))
    assert len(axes) == self.rank and sorted(axes) == list(range(self.rank)), f"Invalid permutation {axes} for shape {self.shape}"
    layout = permute_layout(perm, self.layout)
    if DEBUG >= 2: print(f"permute {self.shape} by {axes} ({self.layout.__name__} -> {layout.__name__})")
    return Mapping.new(layout, self.shape.permute(axes), tuple(self.strides[a] for a in axes))

  def transpose(self) -> Mapping:
    layout = transpose_layout(self.shape, self.layout)
    if DEBUG >= 2: print(f"transpose {self.shape} ({self.layout.__name__} -> {layout.__name__})")
    return Mapping.new(layout, self.shape.reverse(), self.strides[::-1])

  def split_axis_at(self, axis:Axis, mid:int) -> tuple[Mapping, Mapping, int]:
    """Returns both halves and the base offset of the second one."""
    ax = resolve_axis(axis, self.shape)
    n = self.dim(ax)
    assert is_int(mid) and 0 <= mid <= n, f"split point {mid} out of bounds for axis {ax} with size {n}"
    layout = split_layout(axis, self.shape, self.layout)
    first = Mapping.new(layout, self.shape.resize(ax, mid), self.strides)
    second = Mapping.new(layout, self.shape.resize(ax, n - mid), self.strides)
    return first, second, mid * self.strides[ax]

  def axis_at(self, axis:Axis, index:int) -> tuple[Mapping, int]:
    """Removes `axis`, returning the new mapping and the base offset of `index` along it."""
    ax = resolve_axis(axis, self.shape)
    n = self.dim(ax)
    assert is_int(index) and 0 <= index < n, f"index {index} out of bounds for axis {ax} with size {n}"
    layout = split_layout(axis, self.shape, self.layout)
    strides = self.strides[:ax] + self.strides[ax+1:]
    return Mapping.new(layout, self.shape.remove(ax), strides), index * self.strides[ax]

  def index(self, indices:tuple) -> tuple[Mapping, int]:
    resolved, layout = resolve_indices(tupled(indices), self.shape, self.layout)
    offset, dims, strides = 0, [], []
    for ax, r in enumerate(resolved):
      st = self.strides[ax]
      if is_int(r): offset += r * st
      elif r is FULL: dims.append(self.shape[ax]); strides.append(st)
      else:
        start, length, step = r
        offset += start * st
        dims.append(Dyn(length))
        strides.append(st * step)
    return Mapping.new(layout, self.shape.derive(dims), strides), offset

  def remap(self, shape=None, layout:type[Layout]|None=None) -> Mapping:
    shape = self.shape if shape is None else remap_shape(self.shape, shape)
    layout = self.layout if layout is None else layout
    if DEBUG >= 2: print(f"remap {self.shape} ({self.layout.__name__}) -> {shape} ({layout.__name__})")
    if layout.is_dense:
      assert self.is_contiguous(), f"cannot remap to dense layout, strides {self.strides} of shape {self.shape} are not contiguous"
      return DenseMapping(shape)
    return StridedMapping(shape, self.strides)

  def expand(self, shape:Shape) -> Mapping:
    """Broadcasts to `shape`: new leading axes and expanded size-1 axes get stride 0."""
    assert broadcast_shapes(self.shape, shape) == shape, f"Cannot broadcast shape {self.shape} to {shape}"
    if self.shape == shape: return self
    pad = shape.rank - self.rank
    strides = (0,)*pad + tuple(0 if n == 1 and m != 1 else st for n, m, st in zip(self.shape.sizes, shape.sizes[pad:], self.strides))
    return StridedMapping(shape, strides)

  def __repr__(self): return f"{type(self).__name__}({self.shape}, strides={self.strides})"

@dataclass(frozen=True, eq=False)
class DenseMapping(Mapping):
  shape:Shape
  layout = Dense
  @property
  def strides(self) -> tuple[int, ...]: return strides_for_shape(self.shape.sizes)
  def __eq__(self, x): return isinstance(x, DenseMapping) and self.shape.dims == x.shape.dims
  def __hash__(self): return hash(self.shape)

@dataclass(frozen=True, eq=False)
class StridedMapping(Mapping):
  shape:Shape
  _strides:tuple[int, ...]
  layout = Strided
  def __post_init__(self):
    assert len(self._strides) == self.shape.rank, f"strides {self._strides} do not match rank {self.shape.rank}"
    assert all_instance(self._strides, int), f"strides must be ints, got {self._strides}"
  @property
  def strides(self) -> tuple[int, ...]: return self._strides
  def __eq__(self, x): return isinstance(x, StridedMapping) and self.shape.dims == x.shape.dims and self._strides == x._strides
  def __hash__(self): return hash((self.shape, self._strides))
