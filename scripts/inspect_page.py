import sys
import json
import pathlib
from dotenv import load_dotenv

load_dotenv()

# Ensure project root is on sys.path so `recipe_import` can be imported
ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from recipe_import.ingest.fetch import fetch_document
from recipe_import.ingest.extract_linked_data import iter_blocks
from recipe_import.orchestrate.run import EXTRACTORS

url = sys.argv[1] if len(sys.argv) > 1 else 'https://www.chefkoch.de/rezepte/1108101216891426/Apfelkuchen.html'
doc = fetch_document(url)
print('Final URL:', doc.final_url, '|', doc.content_type)
blocks = list(iter_blocks(doc.text))
print('Found', len(blocks), 'JSON-LD blocks')
for i, b in enumerate(blocks[:10]):
    print('--- block', i)
    print(json.dumps(b, indent=2, ensure_ascii=False)[:1000])
for name, extractor in EXTRACTORS:
    print('=== extractor', name)
    candidate = extractor(doc)
    if candidate is None:
        print('NotFound')
        continue
    print(json.dumps(candidate.model_dump(), indent=2, ensure_ascii=False)[:3000])
