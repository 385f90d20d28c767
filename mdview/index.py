from __future__ import annotations
from mdview.dim import Const
from mdview.helpers import is_int, all_instance
from mdview.layout import Layout
from mdview.shape import Shape

# Axis markers. A `Const(n)` axis, `Rows` and `Cols` are static: the layout they produce is decided
# without looking at strides. Plain ints are dynamic axes and always give strided results.

class AxisMarker:
  __slots__ = ("name", "from_end")
  def __init__(self, name:str, from_end:int): self.name, self.from_end = name, from_end
  def __repr__(self): return self.name

Rows = AxisMarker("Rows", 1)
Cols = AxisMarker("Cols", 2)

Axis = int|Const|AxisMarker

def resolve_axis(axis:Axis, shape:Shape) -> int:
  if isinstance(axis, AxisMarker):
    assert shape.rank >= axis.from_end, f"{axis} requires rank of at least {axis.from_end}, got rank {shape.rank}"
    return shape.rank - axis.from_end
  assert isinstance(axis, Const) or is_int(axis), f"axis must be an int, Const, Rows or Cols, got {axis!r}"
  assert 0 <= int(axis) < shape.rank, f"axis {axis} out of bounds for rank {shape.rank}"
  return int(axis)

def is_first_axis(axis:Axis, shape:Shape) -> bool:
  if isinstance(axis, Const): return axis.size == 0
  if isinstance(axis, AxisMarker): return not shape.is_dyn_rank and shape.rank == axis.from_end
  return False

def is_last_axis(axis:Axis, shape:Shape) -> bool:
  if isinstance(axis, AxisMarker): return axis.from_end == 1
  if isinstance(axis, Const): return not shape.is_dyn_rank and axis.size == shape.rank - 1
  return False

### Layout rules ###

def split_layout(axis:Axis, shape:Shape, layout:type[Layout]) -> type[Layout]:
  """Layout after indexing or splitting `axis`: kept only for a static first axis."""
  return layout.keep_if(is_first_axis(axis, shape))

def lane_layout(axis:Axis, shape:Shape, layout:type[Layout]) -> type[Layout]:
  return layout.keep_if(is_last_axis(axis, shape))

def permute_layout(perm:tuple, layout:type[Layout]) -> type[Layout]:
  static = all_instance(perm, Const)
  return layout.keep_if(static and all(p.size == i for i, p in enumerate(perm)))

def transpose_layout(shape:Shape, layout:type[Layout]) -> type[Layout]:
  return layout.keep_if(not shape.is_dyn_rank and shape.rank <= 1)

### Index resolution ###

FULL = slice(None)

def is_full_slice(s) -> bool: return isinstance(s, slice) and s.start is None and s.stop is None and s.step in (None, 1)

def resolve_slice(s:slice, n:int) -> tuple[int, int, int]:
  """Validates a slice against an axis of extent `n`, returning (start, length, step)."""
  step = 1 if s.step is None else s.step
  assert is_int(step) and step != 0, f"slice step must be a non-zero int, got {step!r}"
  for bound in (s.start, s.stop):
    assert bound is None or (is_int(bound) and bound >= 0), f"slice bounds must be non-negative ints, got {s}"
  if step > 0:
    start = 0 if s.start is None else s.start
    stop = n if s.stop is None else s.stop
    assert start <= stop <= n, f"slice {s} out of bounds for dimension of size {n}"
    return start, (stop - start + step - 1) // step, step
  start = n - 1 if s.start is None else s.start
  stop = -1 if s.stop is None else s.stop
  assert stop <= start < n, f"slice {s} out of bounds for dimension of size {n}"
  return start, max(0, (start - stop - step - 1) // -step), step

def resolve_indices(indices:tuple, shape:Shape, layout:type[Layout]) -> tuple[list[int|slice|tuple[int, int, int]], type[Layout]]:
  """Validates every index component against its axis and decides the resulting layout.

  Components are ints (the axis is removed) or slices (the axis is resized). Full slices (`:`)
  and missing trailing components resolve to `FULL` and keep the axis as is. The layout is kept
  only for the pattern of leading ints, at most one unit-step range, then full slices. Bounded
  slices count as ranges even when they happen to cover the whole axis.
  """
  assert len(indices) <= shape.rank, f"too many indices {indices} for rank {shape.rank}"
  resolved = []
  for ax, (i, n) in enumerate(zip(indices, shape.sizes)):
    if isinstance(i, Const): i = i.size
    if is_full_slice(i): resolved.append(FULL)
    elif isinstance(i, slice): resolved.append(resolve_slice(i, n))
    else:
      assert is_int(i), f"index for axis {ax} must be an int or a slice, got {i!r}"
      assert 0 <= i < n, f"index {i} out of bounds for axis {ax} with size {n}"
      resolved.append(i)
  resolved.extend(FULL for _ in shape.sizes[len(indices):])
  preserved, after_range = True, False
  for r in resolved:
    if is_int(r): preserved &= not after_range
    elif r is FULL: after_range = True
    elif r[2] == 1 and not after_range: after_range = True
    else: preserved = False
  return resolved, layout.keep_if(preserved)
