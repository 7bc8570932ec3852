import os

from fileshare.handles import HandleOpenError, HandleStore, open_locator
from fileshare.models import SharedFile


def shared(path, file_id="id1"):
	return SharedFile(id=file_id, display_name=os.path.basename(str(path)), locator=path, size=0)


def test_open_stores_one_handle_per_id(make_file):
	store = HandleStore()
	file = shared(make_file("a.txt", b"abc"))
	first = store.open(file)
	second = store.open(file)
	assert first.ok
	assert second.handle is first.handle
	assert len(store) == 1
	assert first.handle.read() == b"abc"
	store.release_all()


def test_open_failure_is_recorded(tmp_path):
	store = HandleStore()
	file = shared(str(tmp_path / "missing.bin"))
	result = store.open(file)
	assert not result.ok
	assert isinstance(result.error, HandleOpenError)
	assert store.has_failed(file.id)
	assert len(store) == 0


def test_release_is_idempotent(make_file):
	store = HandleStore()
	file = shared(make_file("a.txt"))
	handle = store.open(file).handle
	assert store.release(file.id) is True
	assert handle.closed
	assert store.release(file.id) is False
	assert store.get(file.id) is None


def test_release_all_closes_everything(make_file):
	store = HandleStore()
	handles = [store.open(shared(make_file(f"{i}.txt"), file_id=f"id{i}")).handle for i in range(3)]
	assert store.release_all() == 3
	assert all(h.closed for h in handles)
	assert len(store) == 0


def test_concurrent_open_of_same_id_keeps_one_handle(make_file):
	path = make_file("a.txt")
	store = HandleStore()
	file = shared(path)
	opened = []

	def opener(locator):
		handle = open(locator, "rb")
		opened.append(handle)
		if len(opened) == 1:
			# Another open of the same id finishes while this one is in flight
			store.open(file)
		return handle

	store._opener = opener
	result = store.open(file)
	assert len(opened) == 2
	assert result.handle is opened[1]
	assert opened[0].closed
	assert len(store) == 1
	store.release_all()


def test_open_locator_duplicates_descriptor(make_file):
	path = make_file("a.txt", b"xyz")
	fd = os.open(path, os.O_RDONLY)
	try:
		handle = open_locator(fd)
		assert handle.fileno() != fd
		assert handle.read() == b"xyz"
		handle.close()
		# the caller's descriptor is still usable
		assert os.pread(fd, 3, 0) == b"xyz"
	finally:
		os.close(fd)
