from typing import TypeVar, Iterable
import os
import functools, operator
T = TypeVar("T")

class EnvOption:
  value: int
  key: str
  def __init__(self, key:str, default_value:int=0):
    self.key = key.upper()
    self.value = os.getenv(self.key, default_value)
    try: self.value = int(self.value)
    except ValueError:
      raise ValueError(f"Invalid value for {self.key}: {self.value}. Expected an integer.")
  def __bool__(self): return bool(self.value)
  def __ge__(self, x): return self.value >= x
  def __gt__(self, x): return self.value > x
  def __lt__(self, x): return self.value < x
  def __repr__(self): return f"{self.key}={self.value}"

# DEBUG>=2 traces mapping transforms, DEBUG>=3 traces view construction and broadcasting
DEBUG = EnvOption("DEBUG")

def prod(x:Iterable[T]) -> T|int: return functools.reduce(operator.mul, x, 1)
def tupled(x) -> tuple: return tuple(x) if isinstance(x, Iterable) else (x,)
def all_same(items:tuple[T, ...]|list[T]): return all(x == items[0] for x in items)
def all_instance(items:Iterable[T], types:tuple[type]|type): return all(isinstance(x, types) for x in items)
def is_int(x) -> bool: return isinstance(x, int) and not isinstance(x, bool)
def is_nested(x) -> bool: return hasattr(x, "__len__") and hasattr(x, "__getitem__") and not isinstance(x, (str, bytes))
def get_shape(x) -> tuple[int, ...]:
  if not is_nested(x): return ()
  if not all_same(subs:=[get_shape(xi) for xi in x]): raise ValueError(f"inhomogeneous shape from {x}")
  return (len(subs),) + (subs[0] if subs else ())
def fully_flatten(l) -> list:
  if is_nested(l):
    flattened = []
    for li in l: flattened.extend(fully_flatten(li))
    return flattened
  return [l]
