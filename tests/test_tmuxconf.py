"""Tests for the generated tmux configuration file."""

from ubertmux.tmuxconf import (
    WORKSPACE_KEYS,
    materialize_config,
    render_tmux_conf,
    workspace_binding,
    workspace_command,
)


def bound_lines(path, workspace):
    return [line for line in path.read_text().splitlines() if line.endswith(workspace_command(workspace))]


class TestMaterializeConfig:
    """Tests for materialize_config."""

    def test_creates_template_when_absent(self, tmp_path):
        path = tmp_path / "nested" / "ubertmux.conf"
        assert materialize_config(path) == path
        assert path.read_text() == render_tmux_conf(path)

    def test_reload_binding_uses_configured_path(self, tmp_path):
        path = tmp_path / "custom.conf"
        materialize_config(path)
        content = path.read_text()
        assert f'source-file "{path}"' in content
        assert "~/.ubertmux.conf" not in content

    def test_existing_file_left_untouched(self, tmp_path):
        path = tmp_path / "ubertmux.conf"
        path.write_text("set -g mouse off\n")
        materialize_config(path)
        assert path.read_text() == "set -g mouse off\n"

    def test_workspace_binding_appended_once(self, tmp_path, workdir):
        path = tmp_path / "ubertmux.conf"
        materialize_config(path, workdir)
        materialize_config(path, workdir)
        content = path.read_text()
        assert content.startswith(render_tmux_conf(path))
        assert bound_lines(path, workdir) == [workspace_binding(workdir, "1")]

    def test_distinct_workspaces_get_distinct_keys(self, tmp_path):
        path = tmp_path / "ubertmux.conf"
        a = tmp_path / "a"
        b = tmp_path / "b"
        materialize_config(path, a)
        materialize_config(path, b)
        materialize_config(path, a)
        assert bound_lines(path, a) == [workspace_binding(a, "1")]
        assert bound_lines(path, b) == [workspace_binding(b, "2")]

    def test_binding_goes_on_its_own_line(self, tmp_path, workdir):
        path = tmp_path / "ubertmux.conf"
        path.write_text("set -g mouse on")
        materialize_config(path, workdir)
        assert path.read_text().splitlines() == ["set -g mouse on", workspace_binding(workdir, "1")]

    def test_no_key_left(self, tmp_path, capsys):
        path = tmp_path / "ubertmux.conf"
        path.write_text(
            "".join(workspace_binding(tmp_path / str(i), k) + "\n" for i, k in enumerate(WORKSPACE_KEYS))
        )
        before = path.read_text()
        materialize_config(path, tmp_path / "one-more")
        assert path.read_text() == before
        assert "[warn]" in capsys.readouterr().err

    def test_binding_quotes_path(self, tmp_path):
        binding = workspace_binding(tmp_path / 'my "dir"', "1")
        assert binding.startswith('bind-key -T ubertmux-workspace 1 new-window -c "')
        assert '\\"dir\\"' in binding
