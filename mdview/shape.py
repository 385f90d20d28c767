from __future__ import annotations
from mdview.dim import Dim, Const, Dyn, into_dim
from mdview.helpers import prod, is_int

class Shape:
  """Fixed-rank shape, an ordered tuple of dims."""
  __slots__ = ("dims",)
  is_dyn_rank = False
  def __init__(self, dims=()):
    self.dims:tuple[Dim, ...] = tuple(map(into_dim, dims))

  @property
  def rank(self) -> int: return len(self.dims)
  @property
  def sizes(self) -> tuple[int, ...]: return tuple(d.size for d in self.dims)
  @property
  def is_const(self) -> bool: return all(d.is_const for d in self.dims)
  def len(self) -> int: return prod(self.sizes)
  def is_empty(self) -> bool: return self.len() == 0
  def dim(self, i:int|Const) -> int:
    assert is_int(i) or isinstance(i, Const), f"dimension must be an int or Const, got {i!r}"
    assert 0 <= int(i) < self.rank, f"dimension {i} out of bounds for rank {self.rank}"
    return self.dims[int(i)].size

  def derive(self, dims) -> Shape: return type(self)(dims)
  def remove(self, axis:int) -> Shape: return self.derive(self.dims[:axis] + self.dims[axis+1:])
  def resize(self, axis:int, size:int) -> Shape: return self.derive(self.dims[:axis] + (Dyn(size),) + self.dims[axis+1:])
  def reverse(self) -> Shape: return self.derive(self.dims[::-1])
  def permute(self, perm:tuple[int, ...]) -> Shape: return self.derive(tuple(self.dims[i] for i in perm))

  def __iter__(self): return iter(self.sizes)
  def __getitem__(self, i): return self.dims[i]
  def __eq__(self, x):
    if isinstance(x, Shape): return self.sizes == x.sizes
    if isinstance(x, (tuple, list)): return self.sizes == tuple(int(s) for s in x)
    return NotImplemented
  def __hash__(self): return hash(self.sizes)
  def __repr__(self): return f"{type(self).__name__}({', '.join(map(repr, self.dims))})"

class DynRank(Shape):
  """Shape whose rank is only known at runtime; every dim is `Dyn`."""
  __slots__ = ()
  is_dyn_rank = True
  def __init__(self, dims=()):
    super().__init__(Dyn(int(d)) for d in dims)
  def __repr__(self): return f"DynRank{self.sizes}"

def into_shape(x) -> Shape:
  if isinstance(x, Shape): return x
  if isinstance(x, (Dim, int)): return Shape((x,))
  return Shape(x)

INFER = -1

def resolve_shape(x, total:int) -> Shape:
  """Turns a reshape target into a shape, inferring at most one `-1` dim from `total`."""
  if isinstance(x, Shape): return x
  x = (x,) if isinstance(x, (Dim, int)) else tuple(x)
  infer = [i for i, d in enumerate(x) if not isinstance(d, Dim) and d == INFER]
  assert len(infer) <= 1, f"at most one dimension can be inferred, got shape {x}"
  if not infer: return Shape(x)
  known = prod(int(d) for i, d in enumerate(x) if i != infer[0])
  assert known != 0 and total % known == 0, f"cannot infer dimension of shape {x} for length {total}"
  return Shape(x[:infer[0]] + (Dyn(total // known),) + x[infer[0]+1:])

def remap_shape(shape:Shape, template) -> Shape:
  """Reinterprets `shape` under a shape template: `DynRank`, `Shape`, or a tuple of `Const(n)`, `Dyn` and ints."""
  if template is DynRank: return DynRank(shape.sizes)
  if template is Shape: return Shape(Dyn(s) for s in shape.sizes)
  if isinstance(template, Shape): template = template.dims
  template = tuple(template)
  assert len(template) == shape.rank, f"cannot remap rank {shape.rank} shape {shape} to rank {len(template)} template {template}"
  dims = []
  for i, (t, d) in enumerate(zip(template, shape.dims)):
    if t is Dyn: dims.append(Dyn(d.size)); continue
    assert int(t) == d.size, f"dimension {i} has size {d.size} but the template requires {t}"
    dims.append(t if isinstance(t, Dim) else Dyn(d.size))
  return Shape(dims)

def broadcast_shapes(left:Shape, right:Shape) -> Shape:
  if left == right: return left if left.is_const or not right.is_const else right
  ls, rs = left.rank, right.rank
  ldims = (Const(1),)*(rs-ls) + left.dims if ls < rs else left.dims
  rdims = (Const(1),)*(ls-rs) + right.dims if rs < ls else right.dims
  dims = []
  for l, r in zip(ldims, rdims):
    assert l.size == r.size or l.size == 1 or r.size == 1, f"Cannot broadcast shapes {left}, {right}"
    if l.size == r.size: dims.append(l if l.is_const else r)
    else: dims.append(r if l.size == 1 else l)
  return (DynRank if left.is_dyn_rank or right.is_dyn_rank else Shape)(dims)
