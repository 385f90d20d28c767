import os
import sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from mdview.dim import Const
from mdview.expr import Expand, fill, fill_with, from_elem, from_fn, into_expr
from mdview.index import Rows, Cols
from mdview.layout import Dense, Strided
from mdview.view import View, ViewMut
from mdview.helpers import DEBUG
import unittest, itertools, operator

DEBUG.value = 0

def matrix(): return View(list(range(6)), (2, 3))

class TestExpr(unittest.TestCase):
  def test_zip_broadcasts_single_slice(self):
    a, b = matrix(), View([10, 20, 30], (1, 3))
    z = a.zip(b)
    self.assertEqual(z.shape, (2, 3))
    self.assertEqual(list(z), [(0, 10), (1, 20), (2, 30), (3, 10), (4, 20), (5, 30)])

  def test_zip_scalar(self):
    self.assertEqual(list(matrix().zip(5)), [(i, 5) for i in range(6)])

  def test_zip_pads_leading_axes(self):
    a, b = View([1, 2], (2, 1)), View([10, 20, 30], (3,))
    self.assertEqual(a.zip_with(b, operator.add).eval(), [[11, 21, 31], [12, 22, 32]])

  def test_broadcast_multiply(self):
    result = into_expr([[1, 2, 3], [4, 5, 6]]).zip_with([5, 2, 10], operator.mul).eval()
    self.assertEqual(result.view().to_nested(), [[5, 4, 30], [20, 10, 60]])

  def test_zip_incompatible_raises_on_creation(self):
    with self.assertRaisesRegex(AssertionError, "Cannot broadcast"): matrix().zip([1, 2])
    with self.assertRaisesRegex(AssertionError, "Cannot broadcast"): matrix().zip(View(list(range(4)), (2, 2)))

  def test_expand_generic_expression(self):
    z = from_fn((3,), lambda i: i[0] * 10).zip(matrix())
    self.assertIsInstance(z.a, Expand)
    self.assertEqual([x for x, _ in z], [0, 10, 20, 0, 10, 20])

  def test_map(self):
    self.assertEqual(list(matrix().map(lambda x: x * 2)), [0, 2, 4, 6, 8, 10])
    self.assertEqual(list(matrix().apply(str)), ["0", "1", "2", "3", "4", "5"])

  def test_map_over_zip(self):
    e = matrix().zip(1).map(sum)
    self.assertEqual(e.shape, (2, 3))
    self.assertEqual(list(e), [1, 2, 3, 4, 5, 6])

  def test_for_each(self):
    out = []
    matrix().transpose().for_each(out.append)
    self.assertEqual(out, [0, 3, 1, 4, 2, 5])

  def test_expressions_are_rederived(self):
    v = matrix()
    it = v.iter()
    self.assertEqual(list(it), list(range(6)))
    self.assertEqual(list(it), [])
    self.assertEqual(list(v.iter()), list(range(6)))

  def test_cloned(self):
    item = []
    out = list(View([item], (1,)).cloned())
    self.assertEqual(out, [[]])
    self.assertIsNot(out[0], item)

  def test_outer_expr(self):
    v = View(list(range(6)), (Const(2), Const(3)))
    rows = list(v.outer_expr())
    self.assertEqual([r.to_vec() for r in rows], [[0, 1, 2], [3, 4, 5]])
    self.assertTrue(all(r.layout is Dense for r in rows))
    self.assertTrue(all(r.layout is Strided for r in v.axis_expr(0)))

  def test_axis_expr(self):
    self.assertEqual([c.to_vec() for c in matrix().axis_expr(1)], [[0, 3], [1, 4], [2, 5]])

  def test_lanes(self):
    v = View(list(range(6)), (Const(2), Const(3)))
    self.assertEqual([r.to_vec() for r in v.rows()], [[0, 1, 2], [3, 4, 5]])
    self.assertEqual([c.to_vec() for c in v.cols()], [[0, 3], [1, 4], [2, 5]])
    self.assertTrue(all(r.layout is Dense for r in v.rows()))
    self.assertTrue(all(c.layout is Strided for c in v.lanes(Cols)))

  def test_lanes_rank3(self):
    v = View(list(range(24)), (2, 3, 4))
    lanes = v.lanes(1)
    self.assertEqual(lanes.shape, (2, 4))
    self.assertEqual(next(iter(lanes)).to_vec(), [0, 4, 8])
    self.assertEqual(v.lanes(Rows).len(), 6)

  def test_producers(self):
    self.assertEqual(fill(3).rank, 0)
    self.assertEqual(list(fill(3)), [3])
    t = from_elem((2, 2), 0).eval()
    self.assertEqual(t.shape, (2, 2))
    self.assertEqual(t.into_vec(), [0, 0, 0, 0])
    self.assertEqual(from_fn((2, 3), lambda idx: idx).eval().view().get(1, 2), (1, 2))

  def test_fill_with_calls_per_element(self):
    counter = itertools.count(1)
    buf = [0] * 4
    ViewMut(buf, (2, 2)).assign(fill_with(lambda: next(counter)))
    self.assertEqual(buf, [1, 2, 3, 4])

  def test_into_expr(self):
    self.assertEqual(into_expr(x * x for x in range(3)), [0, 1, 4])
    self.assertEqual(into_expr(range(3)).shape, (3,))
    self.assertEqual(into_expr(4).rank, 0)
    self.assertTrue(into_expr([[1, 2], [3, 4]]).shape.is_const)

  def test_into_expr_inhomogeneous(self):
    with self.assertRaises(ValueError): into_expr([[1, 2], [3]])

  def test_eval(self):
    a, b = matrix(), View([10, 20, 30], (3,))
    self.assertEqual(a.zip_with(b, operator.add).eval(), [[10, 21, 32], [13, 24, 35]])

if __name__ == '__main__':
  unittest.main()
