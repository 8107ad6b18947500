"""Tests for rule-based classification and fact-bullet synthesis."""

from datetime import datetime, timezone

from nfl_briefing.classifier import Classifier, is_allowed, passes_quality
from nfl_briefing.rules import allowlist_for
from nfl_briefing.types import NormalizedArticle
from nfl_briefing.urls import short_source_name, source_domain


def _article(url, title, text, **kwargs):
    return NormalizedArticle(
        url=url,
        source=short_source_name(url),
        domain=source_domain(url),
        title=title,
        text=text,
        published=datetime(2025, 8, 16, 12, 0, tzinfo=timezone.utc),
        **kwargs,
    )


def test_general_interest_source_never_populates_roster():
    article = _article(
        "https://sports.yahoo.com/nfl/chiefs-sign-tackle",
        "Chiefs add depth on the line",
        "The Chiefs signed veteran tackle Joe Example to a one-year deal on Tuesday, according to sources.",
    )
    assert Classifier().classify(article) is None


def test_roster_move_from_allowlisted_source():
    article = _article(
        "https://www.profootballrumors.com/2025/08/chiefs-sign-tackle",
        "Chiefs add depth on the line",
        "The Chiefs signed veteran tackle Joe Example to a one-year deal on Tuesday.",
    )
    item = Classifier().classify(article)
    assert item is not None
    assert item.category == "roster"
    assert item.team == "KC"
    assert item.player == "Joe Example"
    assert item.fact_bullet == "KC — The Chiefs signed veteran tackle Joe Example to a one-year deal on Tuesday. (PFR)"


def test_injury_takes_precedence_over_roster():
    article = _article(
        "https://www.nfl.com/news/ravens-moves",
        "Ravens shuffle the roster",
        "The Ravens placed Mark Example on injured reserve and signed Tom Example off the practice squad.",
    )
    item = Classifier().classify(article)
    assert item is not None
    assert item.category == "injury"
    assert item.fact_bullet.endswith("(NFL.com)")


def test_breaking_only_when_no_other_pattern_fired():
    article = _article(
        "https://www.espn.com/nfl/story/_/id/5/browns-qb",
        "Browns name starter",
        "The Browns officially announced that Joe Flacco will start Sunday against the Bengals.",
    )
    item = Classifier().classify(article)
    assert item is not None
    assert item.category == "breaking"
    assert item.player == "Joe Flacco"
    assert item.fact_bullet == (
        "The Browns officially announced that Joe Flacco will start Sunday against the Bengals. (ESPN)"
    )


def test_precedence_falls_through_to_next_allowed_category():
    # Injury vocabulary fires first, but this outlet only feeds roster.
    article = _article(
        "https://www.profootballrumors.com/2025/08/jets-moves",
        "Jets shuffle linebackers",
        "The Jets placed linebacker Sam Example on injured reserve and signed Tom Example off the practice squad.",
    )
    assert not any(domain.endswith("profootballrumors.com") for domain in allowlist_for("injury"))
    item = Classifier().classify(article)
    assert item is not None
    assert item.category == "roster"
    assert item.fact_bullet.startswith("NYJ — The Jets placed linebacker")


def test_injury_bullet_leads_with_player_and_team():
    article = _article(
        "https://profootballtalk.nbcsports.com/2025/08/16/stafford/",
        "Rams update on quarterback",
        "Coach Sean McVay spoke after practice. Matthew Stafford was limited in practice with the Rams because of a back issue.",
    )
    item = Classifier().classify(article)
    assert item is not None
    assert item.category == "injury"
    assert item.fact_bullet.startswith("Matthew Stafford (LAR) — Matthew Stafford was limited in practice")
    assert item.fact_bullet.endswith("(PFT)")


def test_excluded_noise_is_rejected():
    article = _article(
        "https://www.espn.com/nfl/story/_/id/6/takeaways",
        "Takeaways from the Eagles preseason opener",
        "Jalen Hurts was limited in practice with a knee issue before the game.",
    )
    assert Classifier().classify(article) is None


def test_quality_check_rejects_fragments():
    article = _article("https://www.espn.com/nfl/story/_/id/7/knee", "Knee injury", "")
    assert Classifier().classify(article) is None
    assert not passes_quality("Knee injury")
    assert not passes_quality("PLAYER OUT FOR SEASON WITH INJURY")
    assert passes_quality("Jalen Hurts was limited in practice on Thursday.")


def test_structured_record_skips_pattern_checks_but_not_allowlist():
    table = _article(
        "https://www.espn.com/nfl/player/_/id/1/matthew-stafford",
        "Matthew Stafford (LAR) Limited",
        "Matthew Stafford Limited. back issue",
        stage="table",
        player="Matthew Stafford",
        team="LAR",
        bullet="Matthew Stafford (LAR) — Limited (back issue) · Updated Aug 14 (ESPN)",
        category_hint="injury",
    )
    item = Classifier().classify(table)
    assert item is not None
    assert item.fact_bullet == "Matthew Stafford (LAR) — Limited (back issue) · Updated Aug 14 (ESPN)"

    stray = _article(
        "https://sports.yahoo.com/nfl/x",
        "Transaction",
        "Something happened.",
        bullet="DAL — Cowboys signed a kicker (Yahoo)",
        category_hint="roster",
    )
    assert Classifier().classify(stray) is None


def test_every_classified_item_is_from_an_allowed_domain():
    texts = [
        "The Bills signed linebacker John Doe to the practice squad on Monday.",
        "Jalen Hurts was limited in practice with a knee issue on Thursday.",
        "The Browns officially announced that Joe Flacco will start Sunday.",
    ]
    urls = [
        "https://sports.yahoo.com/nfl/a",
        "https://www.cbssports.com/nfl/news/b",
        "https://www.espn.com/nfl/story/_/id/c",
        "https://www.profootballrumors.com/2025/08/d",
        "https://www.buffalobills.com/news/e",
        "https://www.randomblog.net/f",
    ]
    classifier = Classifier()
    for url in urls:
        for text in texts:
            item = classifier.classify(_article(url, "Update", text))
            if item is not None:
                assert is_allowed(item.article.domain, item.category)
    assert is_allowed("buffalobills.com", "roster")
    assert not is_allowed("randomblog.net", "breaking")


def test_is_candidate_respects_allowlist():
    article = _article(
        "https://sports.yahoo.com/nfl/hurts-knee",
        "Hurts limited",
        "Jalen Hurts was limited in practice with a knee issue and could be signed to an extension.",
    )
    classifier = Classifier()
    assert classifier.is_candidate(article, "injury")
    assert not classifier.is_candidate(article, "roster")
