"""Unit tests for path helper functions."""

from pathlib import Path

from contract_lifecycle.paths import get_artifact_path, get_default_artifacts_dir


class TestGetDefaultArtifactsDir:
    """Test the get_default_artifacts_dir function."""

    def test_returns_path_in_working_directory(self, tmp_path: Path, monkeypatch):
        """Test that default artifact dir is under the working directory."""
        monkeypatch.chdir(tmp_path)

        artifacts_dir = get_default_artifacts_dir()

        assert isinstance(artifacts_dir, Path)
        assert artifacts_dir.name == ".contract-artifacts"
        assert artifacts_dir.parent.resolve() == tmp_path.resolve()

    def test_returns_absolute_path(self):
        assert get_default_artifacts_dir().is_absolute()


class TestGetArtifactPath:
    """Test the get_artifact_path function."""

    def test_layout(self, tmp_path: Path):
        """Test that artifacts live at <root>/<name>/<version>.json."""
        path = get_artifact_path("Token", "1.2.0", tmp_path)

        assert path == tmp_path / "Token" / "1.2.0.json"

    def test_root_as_string(self, tmp_path: Path):
        path = get_artifact_path("Token", "1.0.0", str(tmp_path))

        assert path.parent == tmp_path / "Token"

    def test_default_root(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        path = get_artifact_path("Token", "1.0.0")

        assert path.parent.parent.name == ".contract-artifacts"
