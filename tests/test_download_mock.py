"""
Isolated test for the 'download' command without hitting the network.
"""

from click.testing import CliRunner
from unittest.mock import patch, Mock
from vignette.__main__ import main


def test_download_mocks_network(tmp_path):
    runner = CliRunner()

    def fake_get(url, *args, **kwargs):
        return Mock(status_code=200, content=b'{"concepts": []}')

    with patch("vignette.__main__.requests.get", side_effect=fake_get):
        res = runner.invoke(
            main,
            ["download", "-u", "https://example.org/snapshots/snomed.json", "-d", str(tmp_path)],
        )
        assert res.exit_code == 0, res.output
        assert (tmp_path / "snomed.json").read_bytes() == b'{"concepts": []}'
