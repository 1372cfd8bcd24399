from recipe_import.ingest.site_rules import (
    SiteRule,
    apply_rule,
    extract_site_rules,
    load_site_rules,
    rule_for_url,
)
from recipe_import.models.recipe_schema import FetchedDocument

CHEFKOCH_PAGE = """
<html><body>
<article><h1>Apfelkuchen von backfee</h1></article>
<span class="recipe-preptime">Arbeitszeit ca. 20 Min.</span>
<span class="recipe-restingtime">Ruhezeit ca. 1 Std.</span>
<input name="portionen" value="12">
<table class="ingredients">
  <thead><tr><th colspan="2"><h3>Für den Teig</h3></th></tr></thead>
  <tbody>
    <tr><td class="td-left">200 g</td><td class="td-right">Mehl</td></tr>
    <tr><td class="td-left"></td><td class="td-right">Salz</td></tr>
  </tbody>
</table>
<table class="ingredients">
  <thead><tr><th colspan="2"><h3>Für den Belag</h3></th></tr></thead>
  <tbody><tr><td class="td-left">1 kg</td><td class="td-right">Äpfel</td></tr></tbody>
</table>
<article class="recipe-instructions"><div class="ds-box">Teig kneten.<br>Äpfel schälen.<br>Backen.</div></article>
<amp-img src="https://img.chefkoch-cdn.de/rezepte/1/bild.jpg"></amp-img>
<img src="https://img.chefkoch-cdn.de/rezepte/1/thumb_bild.jpg">
<img src="https://img.chefkoch-cdn.de/avatar/user.png">
</body></html>
"""

KOCHBAR_PAGE = """
<html><body>
<h1>Linseneintopf</h1>
<table>
  <tr><th>Zutat</th><th>Menge</th></tr>
  <tr><td>Linsen</td><td>250 g</td></tr>
  <tr><td>Suppengrün</td><td>1 Bund</td></tr>
</table>
<div class="rezept-zubereitung"><p>Linsen waschen.</p><p>Alles 40 Minuten kochen.</p></div>
<img data-src="https://images.kochbar.de/rezeptbild/eintopf.jpg" srcset="https://images.kochbar.de/rezeptbild/eintopf_xs.jpg 100w, https://images.kochbar.de/rezeptbild/eintopf_l.jpg 800w">
</body></html>
"""

def test_registry_loads_rules_from_json():
    names = {rule.name for rule in load_site_rules()}
    assert {"chefkoch", "kochbar"} <= names

def test_rule_lookup_by_domain():
    assert rule_for_url("https://www.chefkoch.de/rezepte/1/x.html").name == "chefkoch"
    assert rule_for_url("https://chefkoch.de/rezepte/1/x.html").name == "chefkoch"
    assert rule_for_url("https://notchefkoch.de/r") is None
    assert rule_for_url("https://example.com/r") is None

def test_chefkoch_layout():
    doc = FetchedDocument(text=CHEFKOCH_PAGE, final_url="https://www.chefkoch.de/rezepte/1/Apfelkuchen.html")
    candidate = extract_site_rules(doc)
    assert candidate.extractor == "site:chefkoch"
    assert candidate.title == "Apfelkuchen"
    assert candidate.ingredients == [
        {"amount": "200 g", "name": "Mehl", "group": "Für den Teig"},
        {"amount": None, "name": "Salz", "group": "Für den Teig"},
        {"amount": "1 kg", "name": "Äpfel", "group": "Für den Belag"},
    ]
    assert candidate.instructions == "Teig kneten.\nÄpfel schälen.\nBacken."
    assert candidate.images == ["https://img.chefkoch-cdn.de/rezepte/1/bild.jpg"]
    assert candidate.prep_time == 20
    assert candidate.rest_time == 60
    assert candidate.cook_time is None
    assert candidate.servings == "12"

def test_kochbar_layout():
    doc = FetchedDocument(text=KOCHBAR_PAGE, final_url="https://www.kochbar.de/rezept/123/Linseneintopf.html")
    candidate = extract_site_rules(doc)
    assert candidate.title == "Linseneintopf"
    assert candidate.ingredients == [
        {"amount": "250 g", "name": "Linsen", "group": None},
        {"amount": "1 Bund", "name": "Suppengrün", "group": None},
    ]
    assert candidate.instructions == ["Linsen waschen.", "Alles 40 Minuten kochen."]
    assert candidate.images == [
        "https://images.kochbar.de/rezeptbild/eintopf.jpg",
        "https://images.kochbar.de/rezeptbild/eintopf_l.jpg",
    ]

def test_unknown_domain_is_not_found():
    doc = FetchedDocument(text=CHEFKOCH_PAGE, final_url="https://example.com/apfelkuchen")
    assert extract_site_rules(doc) is None

def test_rule_without_recipe_body_is_not_found():
    doc = FetchedDocument(text="<h1>Startseite</h1>", final_url="https://www.chefkoch.de/")
    assert extract_site_rules(doc) is None

def test_rules_are_data():
    rule = SiteRule.model_validate(
        {
            "name": "demo",
            "domains": ["demo.test"],
            "title": [".headline"],
            "ingredients": ["ul.zutaten li"],
            "instructions": ["ol.schritte li"],
            "images": {"selectors": ["meta[property='og:image']"], "attributes": ["content"]},
            "servings": [".yield@data-count"],
        }
    )
    html = """
    <meta property="og:image" content="/bild.jpg">
    <div class="headline">Demo-Salat</div>
    <span class="yield" data-count="2">für zwei</span>
    <ul class="zutaten"><li>1 Gurke</li><li>2 EL Essig</li></ul>
    <ol class="schritte"><li>Schneiden.</li><li>Anmachen.</li></ol>
    """
    candidate = apply_rule(rule, FetchedDocument(text=html, final_url="https://demo.test/salat"))
    assert candidate.title == "Demo-Salat"
    assert candidate.ingredients == ["1 Gurke", "2 EL Essig"]
    assert candidate.instructions == ["Schneiden.", "Anmachen."]
    assert candidate.images == ["/bild.jpg"]
    assert candidate.servings == "2"
