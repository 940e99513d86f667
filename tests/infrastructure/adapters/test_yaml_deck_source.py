import textwrap

import pytest

from lexis.infrastructure.adapters.yaml_deck_source import YamlDeckSource


@pytest.fixture
def decks_dir(tmp_path):
    d = tmp_path / "decks"
    d.mkdir()
    (d / "french.yaml").write_text(
        textwrap.dedent(
            """\
            name: French basics
            cards:
              - word: chat
                translation: cat
                tags: [animals]
              - word: chien
                translation: dog
                hint: "Le ___ aboie."
              - id: custom-id
                word: courir
                translation: to run
                part_of_speech: verb
              - translation: missing word
            comparison_groups:
              - name: Pets
                category: meaning
                members: [chat, chien]
            """
        ),
        encoding="utf-8",
    )
    (d / "spanish.yml").write_text("id: es\ncards:\n  - word: gato\n    translation: cat\n")
    (d / "broken.yaml").write_text("cards: [unclosed\n")
    (d / "notes.txt").write_text("ignored")
    return d


def test_deck_ids(decks_dir):
    assert YamlDeckSource(decks_dir).deck_ids() == ["french", "es"]


def test_cards_for_deck(decks_dir):
    cards = YamlDeckSource(decks_dir).cards_for_deck("french")

    assert [c.id for c in cards] == ["french:chat", "french:chien", "custom-id"]
    assert cards[0].tags == ("animals",)
    assert cards[1].hint == "Le ___ aboie."
    assert cards[2].part_of_speech == "verb"
    assert all(c.deck_id == "french" for c in cards)


def test_unknown_deck(decks_dir):
    assert YamlDeckSource(decks_dir).cards_for_deck("german") is None


def test_comparison_groups_from_deck_files(decks_dir):
    groups = YamlDeckSource(decks_dir).comparison_groups()
    assert [g.name for g in groups] == ["Pets"]
    assert groups[0].members == ("chat", "chien")


def test_missing_directory(tmp_path):
    source = YamlDeckSource(tmp_path / "nowhere")
    assert source.deck_ids() == []


def test_reload_picks_up_new_decks(decks_dir):
    source = YamlDeckSource(decks_dir)
    assert "german" not in source.deck_ids()

    (decks_dir / "german.yaml").write_text("cards:\n  - word: Katze\n    translation: cat\n")
    source.reload()

    assert "german" in source.deck_ids()
