import pytest
import requests


class FakeResponse:
    """Minimal stand-in for ``requests.Response``."""

    def __init__(self, json_data=None, content=b"", status_code=200, invalid_json=False):
        self.status_code = status_code
        self._json = json_data
        self.content = content
        self.invalid_json = invalid_json

    def json(self):
        if self.invalid_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error")

    def iter_content(self, chunk_size=1):
        for start in range(0, len(self.content), chunk_size):
            yield self.content[start:start + chunk_size]

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


# Behaves like `<image> --appimage-extract`: unpacks into ./squashfs-root.
FAKE_APPIMAGE = b"""#!/bin/sh
[ "$1" = "--appimage-extract" ] || exit 2
mkdir -p squashfs-root/usr/share/icons squashfs-root/resources/app
printf '#!/bin/sh\\necho cursor\\n' > squashfs-root/AppRun
chmod 755 squashfs-root/AppRun
printf 'PNG' > squashfs-root/co.anysphere.cursor.png
printf 'PNG' > squashfs-root/usr/share/icons/other.png
printf '{}' > squashfs-root/resources/app/package.json
"""


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def fake_appimage_bytes():
    return FAKE_APPIMAGE


@pytest.fixture
def extraction_root(tmp_path):
    """An extracted AppImage tree with nested files, a dotfile and a symlink."""
    root = tmp_path / "extract" / "squashfs-root"
    (root / "resources" / "app" / "out").mkdir(parents=True)
    (root / "usr" / "share" / "icons" / "hicolor").mkdir(parents=True)

    app_run = root / "AppRun"
    app_run.write_text("#!/bin/sh\nexec \"$(dirname \"$0\")/cursor\" \"$@\"\n")
    app_run.chmod(0o755)
    (root / "cursor").write_bytes(b"\x7fELF" + b"\0" * 2048)
    (root / "cursor").chmod(0o755)
    (root / "resources" / "app" / "package.json").write_text('{"name": "cursor"}')
    (root / "resources" / "app" / "out" / "main.js").write_text("console.log(1)\n")
    (root / "usr" / "share" / "icons" / "hicolor" / "cursor-256.png").write_bytes(b"PNG")
    (root / ".DirIcon").symlink_to("usr/share/icons/hicolor/cursor-256.png")
    (root / ".env").write_text("X=1\n")
    return root

