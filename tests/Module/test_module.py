import unittest
from types import MappingProxyType

from cpmcmc.core.module import InputSpec, Module


class TestModule(unittest.TestCase):

    def setUp(self):
        # Define test subclasses for dependencies
        class DataModule(Module):
            def __repr__(self):
                return "<DataModule>"

        class ModelModule(Module):
            DEPENDENCIES = MappingProxyType({'data': DataModule})

        self.DataModule = DataModule
        self.ModelModule = ModelModule

    def test_missing_unexpected_and_mistyped_dependencies(self):
        with self.assertRaises(RuntimeError):
            self.ModelModule()  # 'data' missing

        with self.assertRaises(RuntimeError):
            self.ModelModule(data=self.DataModule(), extra=self.DataModule())

        with self.assertRaises(TypeError):
            self.ModelModule(data=object())

        with self.assertRaises(TypeError):
            self.ModelModule(data=Module())  # a Module, but not a DataModule

    def test_register_run_func_and_duplicate(self):
        mod = Module()

        def fn(x):
            return x

        mod.run_func(fn)
        self.assertIn('fn', mod._run_funcs)
        self.assertIs(mod.fn, mod._run_funcs['fn'])

        with self.assertRaises(RuntimeError):
            mod.run_func(fn)  # duplicate by same name

    def test_defaults_from_signature_and_set_input(self):
        mod = Module()
        mod.set_input(b=InputSpec(type=int, default=7))

        def add(a: int, b: int = 1, c: int = 2):
            return a + b + c

        task = mod.run_func(add)
        self.assertEqual(task.fn(a=1), 1 + 7 + 2)
        self.assertEqual(task.fn(1, c=0), 1 + 7 + 0)
        self.assertEqual(task.fn(a=1, b=0, c=0), 1)

    def test_missing_and_unknown_inputs_raise(self):
        mod = Module()

        def func(x):
            return x

        task = mod.run_func(func)
        with self.assertRaises(TypeError):
            task.fn()  # x missing
        with self.assertRaises(TypeError):
            task.fn(x=1, y=2)  # y unknown

    def test_type_check_on_plain_class_annotation(self):
        mod = Module()

        def scale(x: float, factor: int = 2):
            return x * factor

        task = mod.run_func(scale)
        self.assertEqual(task.fn(x=1.5), 3.0)
        with self.assertRaises(TypeError):
            task.fn(x="foo")

    def test_dependency_injected_by_name(self):
        data = self.DataModule()
        model = self.ModelModule(data=data)

        def describe(data, label: str = "run"):
            return f"{label}:{data!r}"

        task = model.run_func(describe)
        self.assertNotIn('data', model._inputs_for_run['describe'])  # dependency not an input
        self.assertEqual(task.fn(), "run:<DataModule>")
        self.assertEqual(task.fn(label="x"), "x:<DataModule>")

    def test_repr_and_str(self):
        model = self.ModelModule(data=self.DataModule())
        model.set_input(param=1)

        def f(param=1):
            return param

        model.run_func(f)

        r = repr(model)
        self.assertIn('data', r)
        self.assertIn('param', r)
        self.assertIn('f', r)

        s = str(model)
        self.assertIn('Dependencies:', s)
        self.assertIn('Inputs:', s)
        self.assertIn('Run Functions:', s)


if __name__ == "__main__":
    unittest.main()
