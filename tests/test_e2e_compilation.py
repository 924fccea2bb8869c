"""
End-to-end tests

Tests the command-line pipelines: gosp2py compiling and running pages, and
gosp-server answering requests from a file or running a page once.
"""

import io
import json

import pytest

from gosp.__main__ import main as gosp2py
from gosp.server import main as gosp_server


PAGE = """\
<?go:top import json ?>
<ul>
<?go:block for item in json.loads('["a", "b"]'): ?>
  <li><?go:expr item ?></li>
<?go:block # ?>
</ul>
"""

EXPECTED = "<ul>\n  <li>a</li>\n  <li>b</li>\n</ul>\n"


@pytest.fixture
def page(tmp_path):
    path = tmp_path / "list.gosp"
    path.write_text(PAGE)
    return path


class TestGosp2py:
    """Test the compiler command"""

    def test_compile_to_stdout(self, page, capsys):
        """Compile a page to standard output"""
        gosp2py([str(page)])
        out = capsys.readouterr().out
        assert out.startswith("# This file was generated by gosp2py.")
        assert "def gosp_generate_page(" in out

    def test_compile_to_file(self, page, tmp_path):
        """Compile a page to a file"""
        target = tmp_path / "list.py"
        gosp2py(["-o", str(target), str(page)])
        compile(target.read_text(), str(target), "exec")

    def test_run(self, page, tmp_path):
        """Run a page instead of writing its code"""
        target = tmp_path / "list.html"
        gosp2py(["--run", "--http-headers", "none", "-o", str(target), str(page)])
        assert target.read_text() == EXPECTED

    def test_run_raw_headers(self, page, tmp_path):
        """Run a page with a raw header block"""
        target = tmp_path / "list.html"
        gosp2py(["-r", "-H", "raw", "-o", str(target), str(page)])
        assert target.read_text() == "Content-type: text/html\n\n" + EXPECTED

    def test_standard_input(self, monkeypatch, capsys):
        """Read the page from standard input"""
        monkeypatch.setattr("sys.stdin", io.StringIO("<?go:expr 1 + 1 ?>"))
        gosp2py(["-"])
        assert "gosp.fprint(gosp_out, 1 + 1, '')" in capsys.readouterr().out

    def test_allowed_imports(self, page, capsys):
        """Compile a page whose imports are listed"""
        gosp2py(["--allowed", "NONE,json", str(page)])
        assert "import json" in capsys.readouterr().out

    def test_rejected_import(self, page, capsys):
        """Refuse a page whose imports are not listed"""
        with pytest.raises(SystemExit) as exc_info:
            gosp2py(["--allowed", "NONE", str(page)])
        assert exc_info.value.code == 1
        err = capsys.readouterr().err
        assert err.startswith("gosp2py: ")
        assert "'json' is not in the list of approved modules" in err

    def test_too_many_top_blocks(self, tmp_path, capsys):
        """Refuse a page with too many top blocks"""
        path = tmp_path / "tops.gosp"
        path.write_text("<?go:top a = 1 ?><?go:top b = 2 ?>")
        with pytest.raises(SystemExit):
            gosp2py([str(path)])
        assert "Too many go:top blocks (2 versus a maximum of 1)" in capsys.readouterr().err
        gosp2py(["--max-top", "2", str(path)])

    def test_include_escape(self, tmp_path, capsys):
        """Refuse an include outside the page directory"""
        path = tmp_path / "bad.gosp"
        path.write_text("<?go:include ../../etc/passwd ?>")
        with pytest.raises(SystemExit):
            gosp2py([str(path)])
        assert "lies outside of" in capsys.readouterr().err

    def test_missing_input(self, tmp_path, capsys):
        """Fail on a page that does not exist"""
        with pytest.raises(SystemExit):
            gosp2py([str(tmp_path / "absent.gosp")])
        assert "Input file not found" in capsys.readouterr().err

    def test_malformed_allow_list(self, page, capsys):
        """Fail on a malformed allow-list"""
        with pytest.raises(SystemExit):
            gosp2py(["--allowed", "json,,os", str(page)])

    def test_highlight(self, page, capsys):
        """Print the page source highlighted"""
        gosp2py(["--highlight", str(page)])
        assert "\x1b[" in capsys.readouterr().out


class TestGospServer:
    """Test the server command in its single-shot modes"""

    def test_request_file(self, tmp_path, capsysbinary):
        """Answer a request file with a page"""
        page = tmp_path / "hello.gosp"
        page.write_text("Hello, <?go:expr gosp_req.get_data.get('name', '?') ?>!")
        request = tmp_path / "request.json"
        request.write_text(json.dumps({"UserData": {"GetData": {"name": "Ada"}}}))
        gosp_server(["--plugin", str(page), "--file", str(request), "-H", "none"])
        assert capsysbinary.readouterr().out == b"Hello, Ada!"

    def test_run_once_structured(self, tmp_path, capsysbinary):
        """Run a page once with structured metadata"""
        page = tmp_path / "hello.gosp"
        page.write_text("<?go:block gosp_set_mime_type('text/plain') ?>hi")
        gosp_server(["--plugin", str(page)])
        assert capsysbinary.readouterr().out == (
            b"debug-message Handling None\nmime-type text/plain\nend-header\nhi"
        )

    def test_compiled_module(self, page, tmp_path, capsysbinary):
        """Run a compiled module once through gosp-server"""
        module = tmp_path / "list.py"
        gosp2py(["-o", str(module), str(page)])
        gosp_server(["--plugin", str(module), "-H", "none"])
        assert capsysbinary.readouterr().out.decode("utf-8") == EXPECTED

    def test_unloadable_plugin(self, tmp_path, capsys):
        """Fail on a plugin that cannot be loaded"""
        with pytest.raises(SystemExit):
            gosp_server(["--plugin", str(tmp_path / "absent.py")])
        assert capsys.readouterr().err.startswith("gosp-server: ")

    def test_socket_and_file_exclusive(self, tmp_path):
        """Refuse both a socket and a request file"""
        with pytest.raises(SystemExit):
            gosp_server(["--plugin", "x.py", "--socket", "s", "--file", "f"])
