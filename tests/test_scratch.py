import json

from homework_portal.scratch import ScratchStore

PNG = "data:image/png;base64,iVBORw0KGgo="


def test_decode_and_write_image(tmp_path):
    store = ScratchStore(str(tmp_path))
    filename, data = store.decode_image("a1", "p1", PNG)
    assert filename == "a1_p1.png"
    store.write_files([(filename, data)])
    assert (tmp_path / "a1_p1.png").read_bytes().startswith(b"\x89PNG")


def test_decode_image_sanitizes_ids(tmp_path):
    filename, _ = ScratchStore(str(tmp_path)).decode_image("../a1", "p/1", PNG, index=2)
    assert filename == "a1_p1_2.png"


def test_bad_payloads_are_ignored(tmp_path):
    store = ScratchStore(str(tmp_path))
    assert store.decode_image("a", "p", "not a data url") is None
    assert store.decode_image("a", "p", "data:image/png;base64,@@@") is None
    ref, files = store.prepare_submission("a", "p", images=["junk", PNG])
    assert json.loads(ref) == ["/scratch-images/a_p_2.png"]
    assert [name for name, _ in files] == ["a_p_2.png"]


def test_prepare_submission_forms(tmp_path):
    store = ScratchStore(str(tmp_path))
    many, files = store.prepare_submission("a", "p", images=[PNG, PNG])
    assert json.loads(many) == ["/scratch-images/a_p_1.png", "/scratch-images/a_p_2.png"]
    assert len(files) == 2
    assert store.prepare_submission("a", "p", image=PNG)[0] == "/scratch-images/a_p.png"
    assert store.prepare_submission("a", "p") == (None, [])
    assert store.prepare_submission("a", "p", images=["junk"]) == (None, [])


def test_prepare_submission_does_not_touch_disk(tmp_path):
    directory = tmp_path / "scratch"
    ScratchStore(str(directory)).prepare_submission("a", "p", images=[PNG])
    assert not directory.exists()


def test_write_files_with_nothing_pending(tmp_path):
    directory = tmp_path / "scratch"
    ScratchStore(str(directory)).write_files([])
    assert not directory.exists()
