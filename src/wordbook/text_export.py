"""
Plain text export of a dictionary.

Renders a human-readable listing (title, description, numbered entries with
IPA, origin and definitions) through Jinja2. The listing is write-only; it is
never imported again.
"""

import logging
import re

from jinja2 import DictLoader, Environment, StrictUndefined

from .models import DictionaryData

logger = logging.getLogger(__name__)

SEPARATOR_WIDTH = 50

# trim_blocks eats the newline after a tag, hence the doubled newline after
# the entry heading, whose line ends in {% endif %}.
DICTIONARY_TEXT_TEMPLATE = """\
{{ title }}
{{ description }}

{{ "=" * width }}

{% for entry in entries %}
{{ loop.index }}. {{ entry.word }}{% if entry.ipa %} [{{ entry.ipa }}]{% endif %}

{% if entry.origin %}
   Origin: {{ entry.origin }}
{% endif %}
{% for d in entry.definitions %}
   {{ loop.index }}. ({{ d.grammatical_class }}) {{ d.meaning }}
{% if d.example %}
      Example: "{{ d.example }}"
{% endif %}
{% endfor %}

{% endfor %}
"""


def create_environment() -> Environment:
    """Jinja2 environment for plain text output."""
    return Environment(
        loader=DictLoader({"dictionary.txt": DICTIONARY_TEXT_TEMPLATE}),
        undefined=StrictUndefined,
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def export_dictionary_text(data: DictionaryData) -> str:
    """Render ``data`` as the plain text listing."""
    template = create_environment().get_template("dictionary.txt")
    content = template.render(
        title=data.title,
        description=data.description,
        width=SEPARATOR_WIDTH,
        entries=data.entries,
    )
    logger.debug(f"Rendered text export with {len(data.entries)} entries")
    return content


def export_filename(title: str) -> str:
    """Download name: title with every non-alphanumeric character as ``_``."""
    return re.sub(r"[^a-zA-Z0-9]", "_", title or "") + "_dictionary.txt"
