from dsa_tracker.seed import is_seeded, load_default_syllabi, seed_default_syllabi


def test_default_syllabi_content():
    syllabi = load_default_syllabi()
    assert len(syllabi) == 7
    assert {s["stream"] for s in syllabi} == {"Prelims", "Mains"}


def test_seed_default_syllabi(store):
    assert not is_seeded(store)
    assert seed_default_syllabi(store) == 7
    assert is_seeded(store)
    syllabi = store.get_syllabi()
    gs3 = next(s for s in syllabi if s.stream == "Mains" and s.name == "General Studies III")
    assert [t.name for t in gs3.topics][0] == "Technology"
    assert all(s.id for s in syllabi)


def test_seed_is_idempotent(store):
    seed_default_syllabi(store)
    assert seed_default_syllabi(store) == 0
    assert len(store.get_syllabi()) == 7


def test_seed_skips_when_user_has_syllabi(store):
    store.add_syllabus("My DSA plan", topics=["Graphs"])
    assert seed_default_syllabi(store) == 0
    assert [s.name for s in store.get_syllabi()] == ["My DSA plan"]
