from mediadex.resolution.tmdb_selection import (
    LogoSelection,
    pick_movie_content_rating,
    pick_preferred_certification,
    pick_trailer_url,
    pick_tv_content_rating,
    select_best,
    select_best_logo,
)


def test_select_best_compares_keys_in_order_and_keeps_first_on_ties() -> None:
    items = [("a", 1, 5), ("b", 2, 1), ("c", 2, 1)]

    best = select_best(items, [lambda item: item[1], lambda item: item[2]])

    assert best == ("b", 2, 1)
    assert select_best([], [lambda item: 0]) is None


def test_chinese_logo_wins_under_chinese_preference() -> None:
    logos = [
        {"file_path": "/en.png", "iso_639_1": "en", "vote_average": 9.0, "width": 1000},
        {"file_path": "/zh.png", "iso_639_1": "zh", "vote_average": 1.0, "width": 100},
    ]

    assert select_best_logo(logos, "zh") == LogoSelection(file_path="/zh.png")
    assert select_best_logo(logos, "en") == LogoSelection(file_path="/en.png")


def test_language_neutral_logo_beats_secondary_language() -> None:
    logos = [
        {"file_path": "/en.png", "iso_639_1": "en"},
        {"file_path": "/null.png", "iso_639_1": None},
        {"file_path": "/blank.png", "iso_639_1": ""},
    ]

    assert select_best_logo(logos, "zh").file_path == "/null.png"


def test_unlisted_languages_rank_last() -> None:
    logos = [
        {"file_path": "/fr.png", "iso_639_1": "fr", "vote_average": 10.0},
        {"file_path": "/en.png", "iso_639_1": "en", "vote_average": 0.0},
    ]

    assert select_best_logo(logos, "zh").file_path == "/en.png"


def test_logo_ties_fall_back_to_votes_then_width() -> None:
    logos = [
        {"file_path": "/narrow.png", "iso_639_1": "zh", "vote_average": 5.0, "width": 200},
        {"file_path": "/wide.png", "iso_639_1": "zh", "vote_average": 5.0, "width": 800},
        {"file_path": "/low.png", "iso_639_1": "zh", "vote_average": 4.0, "width": 2000},
    ]

    assert select_best_logo(logos, "zh").file_path == "/wide.png"


def test_hero_preference_ranks_english_above_neutral() -> None:
    logos = [
        {"file_path": "/null.png", "iso_639_1": None},
        {"file_path": "/en.png", "iso_639_1": "en"},
    ]

    assert select_best_logo(logos, "hero").file_path == "/en.png"


def test_hero_preference_ranks_blank_language_below_untagged() -> None:
    logos = [
        {"file_path": "/blank.png", "iso_639_1": "", "vote_average": 9.0},
        {"file_path": "/null.png", "iso_639_1": None},
    ]

    assert select_best_logo(logos, "hero").file_path == "/null.png"
    assert select_best_logo(logos, "zh").file_path == "/blank.png"


def test_logo_aspect_ratio() -> None:
    assert select_best_logo([{"file_path": "/a.png", "aspect_ratio": 2.5}]).aspect_ratio == 2.5
    assert (
        select_best_logo([{"file_path": "/a.png", "width": 400, "height": 100}]).aspect_ratio
        == 4.0
    )
    assert select_best_logo([{"file_path": "/a.png", "aspect_ratio": 0}]).aspect_ratio is None


def test_logos_without_file_path_are_ignored() -> None:
    assert select_best_logo([{"file_path": None}, {"file_path": ""}, "junk"]) is None
    assert select_best_logo([]) is None


def test_official_trailer_wins_over_preferred_language() -> None:
    videos = [
        {"site": "YouTube", "type": "Trailer", "key": "zh-fan", "official": False, "iso_639_1": "zh"},
        {"site": "YouTube", "type": "Trailer", "key": "en-official", "official": True, "iso_639_1": "en"},
    ]

    assert pick_trailer_url(videos) == "https://www.youtube.com/watch?v=en-official"


def test_trailer_language_orders_official_trailers() -> None:
    videos = [
        {"site": "YouTube", "type": "Trailer", "key": "fr", "official": True, "iso_639_1": "fr"},
        {"site": "YouTube", "type": "Trailer", "key": "neutral", "official": True, "iso_639_1": None},
        {"site": "YouTube", "type": "Trailer", "key": "en", "official": True, "iso_639_1": "en"},
    ]

    assert pick_trailer_url(videos) == "https://www.youtube.com/watch?v=en"


def test_non_trailer_videos_are_ignored() -> None:
    videos = [
        {"site": "Vimeo", "type": "Trailer", "key": "vimeo", "official": True},
        {"site": "YouTube", "type": "Teaser", "key": "teaser", "official": True},
        {"site": "YouTube", "type": "Trailer", "key": "", "official": True},
    ]

    assert pick_trailer_url(videos) == ""
    assert pick_trailer_url([]) == ""


def test_pick_preferred_certification() -> None:
    assert pick_preferred_certification({"JP": "G", "CN": "PG"}) == "PG"
    assert pick_preferred_certification({"DE": "12", "FR": "U"}) == "12"
    assert pick_preferred_certification({}) == ""


def test_movie_content_rating_uses_first_non_blank_certification() -> None:
    raw = {
        "release_dates": {
            "results": [
                {"iso_3166_1": "JP", "release_dates": [{"certification": "G"}]},
                {
                    "iso_3166_1": "us",
                    "release_dates": [{"certification": " "}, {"certification": "PG-13"}],
                },
            ]
        }
    }

    assert pick_movie_content_rating(raw) == "PG-13"
    assert pick_movie_content_rating({}) == ""


def test_tv_content_rating_skips_blank_ratings() -> None:
    raw = {
        "content_ratings": {
            "results": [
                {"iso_3166_1": "KR", "rating": "15"},
                {"iso_3166_1": "CN", "rating": " "},
                {"iso_3166_1": "GB", "rating": "12"},
            ]
        }
    }

    assert pick_tv_content_rating(raw) == "12"
