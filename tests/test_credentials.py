import threading

from fileshare.credentials import CredentialStore


def test_set_and_get():
	store = CredentialStore()
	assert store.get() == ("", "")
	store.set("alice", "secret")
	assert store.get().username == "alice"
	assert store.get().password == "secret"
	assert store.get().is_complete()


def test_readers_never_see_a_mixed_pair():
	store = CredentialStore("a", "a")
	done = threading.Event()
	mismatches = []

	def writer():
		for i in range(2000):
			value = "a" if i % 2 else "b"
			store.set(value, value)
		done.set()

	def reader():
		while not done.is_set():
			username, password = store.get()
			if username != password:
				mismatches.append((username, password))

	threads = [threading.Thread(target=writer), threading.Thread(target=reader)]
	for t in threads:
		t.start()
	for t in threads:
		t.join()
	assert mismatches == []
