import json
import tempfile
import unittest
from pathlib import Path

from advisor.config import DEFAULT_REGIONS_PATH
from advisor.errors import RegionCatalogError
from advisor.regions import JsonRegionCatalog, Region, find_region, load_regions_file


class TestJsonRegionCatalog(unittest.TestCase):
    def test_loads_all_64_districts(self):
        regions = JsonRegionCatalog(DEFAULT_REGIONS_PATH).load_regions()

        self.assertEqual(len(regions), 64)
        names = {r.name for r in regions}
        self.assertIn("Dhaka", names)
        self.assertIn("Bandarban", names)
        self.assertEqual(len(names), 64)
        for region in regions:
            self.assertTrue(20.0 <= region.latitude <= 27.0, region)
            self.assertTrue(88.0 <= region.longitude <= 93.0, region)

    def test_preserves_file_order(self):
        regions = JsonRegionCatalog(DEFAULT_REGIONS_PATH).load_regions()
        self.assertEqual(regions[0].name, "Comilla")
        self.assertEqual(regions[-1].name, "Netrokona")

    def test_find_region_is_case_insensitive(self):
        regions = [Region("Dhaka", 23.7, 90.4), Region("Sylhet", 24.9, 91.9)]
        self.assertEqual(find_region(regions, "sYLHET").name, "Sylhet")
        self.assertIsNone(find_region(regions, "Atlantis"))


class TestLoadRegionsFile(unittest.TestCase):
    def _write(self, content):
        handle = tempfile.NamedTemporaryFile("w", suffix=".json", delete=False, encoding="utf-8")
        with handle:
            handle.write(content)
        self.addCleanup(Path(handle.name).unlink)
        return Path(handle.name)

    def test_numeric_coordinates_are_accepted(self):
        path = self._write(json.dumps({"districts": [{"name": "Dhaka", "lat": 23.7, "long": 90.4}]}))
        self.assertEqual(load_regions_file(path), [Region("Dhaka", 23.7, 90.4)])

    def test_missing_file_is_fatal(self):
        with self.assertRaises(RegionCatalogError):
            load_regions_file(Path("/nonexistent/bd-districts.json"))

    def test_malformed_json_is_fatal(self):
        with self.assertRaises(RegionCatalogError):
            load_regions_file(self._write("{not json"))

    def test_bad_entry_is_fatal(self):
        path = self._write(json.dumps({"districts": [{"name": "Dhaka", "lat": "north", "long": "90.4"}]}))
        with self.assertRaises(RegionCatalogError):
            load_regions_file(path)

    def test_missing_districts_key_is_fatal(self):
        with self.assertRaises(RegionCatalogError):
            load_regions_file(self._write(json.dumps({"regions": []})))


if __name__ == "__main__":
    unittest.main()
