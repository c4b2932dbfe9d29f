from app.lib.theme import generate_theme_css, get_theme_template, get_theme_templates_by_industry, merge_theme


def test_unknown_slug_falls_back_to_default():
    assert get_theme_template("nope")["title"] == "Default Theme"


def test_template_is_a_copy():
    template = get_theme_template("default")
    template["colors"]["primary"] = "#000000"
    assert get_theme_template("default")["colors"]["primary"] == "#3b82f6"


def test_templates_by_industry():
    slugs = {t["slug"] for t in get_theme_templates_by_industry("electronics")}
    assert {"default", "modern"} <= slugs


def test_merge_ignores_none_values():
    theme = get_theme_template("default")
    merged = merge_theme(theme, {"custom_colors": {"primary": "#ff0000", "accent": None}})
    assert merged["colors"]["primary"] == "#ff0000"
    assert merged["colors"]["accent"] == theme["colors"]["accent"]
    assert merged["custom_css"] is None


def test_css_variables():
    merged = merge_theme(
        get_theme_template("default"),
        {"custom_colors": {"primary": "#ff0000"}, "custom_css": ".btn { color: red; }"},
    )
    css = generate_theme_css(merged)
    assert css.startswith(":root {")
    assert "--color-primary: #ff0000;" in css
    assert "--font-heading: Inter;" in css
    assert "--font-size-base: 16px;" in css
    assert css.rstrip().endswith(".btn { color: red; }")
