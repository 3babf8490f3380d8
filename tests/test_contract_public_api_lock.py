from __future__ import annotations

import unittest


class TestPublicApiLockContract(unittest.TestCase):
    def test_api_module_exports_are_present(self) -> None:
        import chronogrid.api as api

        self.assertTrue(hasattr(api, "__all__"))
        self.assertIsInstance(api.__all__, (list, tuple))
        self.assertGreaterEqual(len(api.__all__), 3)
        self.assertEqual(list(api.__all__), sorted(api.__all__))

        for name in api.__all__:
            self.assertIsInstance(name, str)
            self.assertTrue(hasattr(api, name), f"chronogrid.api missing public name: {name}")
            obj = getattr(api, name)
            self.assertIsNotNone(obj, f"chronogrid.api {name} is None")

    def test_package_reexports_match_api_all(self) -> None:
        import chronogrid
        import chronogrid.api as api

        for name in api.__all__:
            self.assertTrue(hasattr(chronogrid, name), f"chronogrid package does not re-export: {name}")
            self.assertIs(getattr(chronogrid, name), getattr(api, name), f"chronogrid.{name} must be same object as chronogrid.api.{name}")

    def test_tools_package_has_no_eager_imports(self) -> None:
        import chronogrid.tools as tools

        self.assertEqual(tools.__all__, [])


if __name__ == "__main__":
    unittest.main(verbosity=2)
