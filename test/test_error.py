import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import unittest
from mdview.dim import Const, Dyn
from mdview.helpers import EnvOption
from mdview.layout import Dense
from mdview.view import View, ViewMut
from unittest.mock import patch

def matrix(): return View([1, 2, 3, 4, 5, 6], (2, 3))

class Test(unittest.TestCase):
    def test_index_out_of_bounds(self):
        with self.assertRaisesRegex(AssertionError, "out of bounds"): matrix().get(2, 0)
        with self.assertRaisesRegex(AssertionError, "out of bounds"): matrix()[0, 3]

    def test_index_rank_mismatch(self):
        with self.assertRaises(AssertionError): matrix().get(1)
        with self.assertRaises(AssertionError): matrix().view(0, 0, 0)

    def test_negative_index(self):
        with self.assertRaises(AssertionError): matrix().get(-1, 0)
        with self.assertRaises(AssertionError): matrix().view(slice(-1, None))

    def test_slice_out_of_bounds(self):
        with self.assertRaises(AssertionError): matrix().view(slice(None), slice(0, 4))
        with self.assertRaises(AssertionError): matrix().view(slice(None), slice(None, None, 0))

    def test_axis_out_of_bounds(self):
        with self.assertRaises(AssertionError): matrix().axis_at(2, 0)
        with self.assertRaises(AssertionError): matrix().axis_at(1, 3)

    def test_split_out_of_bounds(self):
        with self.assertRaises(AssertionError): matrix().split_axis_at(1, 4)

    def test_invalid_permutation(self):
        with self.assertRaisesRegex(AssertionError, "Invalid permutation"): matrix().permute(0, 0)
        with self.assertRaises(AssertionError): matrix().permute(0)

    def test_rank_two_only(self):
        v = View(list(range(8)), (2, 2, 2))
        with self.assertRaises(AssertionError): v.row(0)
        with self.assertRaises(AssertionError): v.col(0)
        with self.assertRaises(AssertionError): View([1, 2], (2,)).diag()

    def test_diag_out_of_bounds(self):
        with self.assertRaises(AssertionError): matrix().diag(4)
        with self.assertRaises(AssertionError): matrix().diag(-3)

    def test_buffer_too_small(self):
        with self.assertRaises(AssertionError): View([1, 2, 3], (2, 2))
        with self.assertRaises(AssertionError): View([1, 2, 3], (3,), offset=1)
        with self.assertRaises(AssertionError): View([1, 2, 3], (2,), offset=-1)
        with self.assertRaises(AssertionError): View([1, 2, 3], (2,), strides=(3,))

    def test_read_only_buffer(self):
        with self.assertRaisesRegex(AssertionError, "not writable"): ViewMut((1, 2), (2,))
        with self.assertRaisesRegex(AssertionError, "not writable"): ViewMut(memoryview(b"ab"), (2,))

    def test_remap(self):
        with self.assertRaises(AssertionError): matrix().remap((Const(3), Dyn))
        with self.assertRaises(AssertionError): matrix().remap((2,))
        with self.assertRaises(AssertionError): matrix().transpose().remap(layout=Dense)

    def test_introspection(self):
        with self.assertRaises(AssertionError): matrix().dims()
        with self.assertRaises(AssertionError): matrix().strides()
        with self.assertRaises(AssertionError): matrix().dim(2)
        with self.assertRaises(AssertionError): matrix().stride(2)

    def test_memoryview_export(self):
        with self.assertRaisesRegex(AssertionError, "buffer protocol"): matrix().as_memoryview()
        with self.assertRaisesRegex(AssertionError, "dense"): View(bytearray(6), (2, 3)).transpose().as_memoryview()
        with self.assertRaisesRegex(AssertionError, "empty"): View(bytearray(), (0,)).as_memoryview()

    def test_assign_validates_before_writing(self):
        buf = [0] * 6
        m = ViewMut(buf, (2, 3))
        with self.assertRaisesRegex(AssertionError, "Cannot broadcast"): m.assign([1, 2])
        with self.assertRaises(AssertionError): m.row(0).assign([[1, 2, 3], [4, 5, 6]])
        with self.assertRaises(AssertionError): m[0, 0:4] = 1
        self.assertEqual(buf, [0] * 6)

    def test_invalid_dims(self):
        with self.assertRaises(AssertionError): Const(-1)
        with self.assertRaises(AssertionError): Dyn(1.5)

    def test_invalid_debug_option(self):
        with patch.dict(os.environ, {"DEBUG": "loud"}):
            with self.assertRaisesRegex(ValueError, "Invalid value for DEBUG"): EnvOption("DEBUG")

if __name__ == '__main__':
    unittest.main()
