"""
Category registry for Mindsort.

One ordered set of category definitions drives the classification prompt,
the store validator and every display label, so what the model is told
and what the store accepts cannot drift apart.
"""

from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict


class CategoryDefinition(BaseModel):
    """A named bucket every chunk belongs to."""

    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    description: str
    rankable: bool = False  # offered a priority view in the UIs


DEFAULT_CATEGORIES: tuple[CategoryDefinition, ...] = (
    CategoryDefinition(
        key="other_emotions",
        label="Other Emotions",
        description="General emotional expressions (happiness, sadness, anger, etc.)",
    ),
    CategoryDefinition(
        key="insights",
        label="Insights",
        description="Realizations, learnings, or understanding gained",
    ),
    CategoryDefinition(
        key="gratitudes",
        label="Gratitudes",
        description="Things the person is grateful for or appreciates",
    ),
    CategoryDefinition(
        key="worries_anxiety",
        label="Worries & Anxiety",
        description="Concerns, fears, anxious thoughts, or stress",
    ),
    CategoryDefinition(
        key="affirmations",
        label="Affirmations",
        description="Positive affirmations, self-encouragement, or positive expectations",
    ),
    CategoryDefinition(
        key="ideas",
        label="Ideas",
        description="Product Ideas, Business Ideas",
        rankable=True,
    ),
    CategoryDefinition(
        key="experiments",
        label="Experiments",
        description="Self Experiments, Trials",
        rankable=True,
    ),
    CategoryDefinition(
        key="wish",
        label="Wishes",
        description="Wishes, Dreams, Desires",
        rankable=True,
    ),
    CategoryDefinition(
        key="questions",
        label="Questions",
        description="Questions, inquiries, or things the person is wondering about",
        rankable=True,
    ),
    CategoryDefinition(
        key="other",
        label="Other",
        description="Content that doesn't fit the above categories",
    ),
)


CLASSIFICATION_PROMPT = """Separate the text into chunks based on line breaks and sentences.

Categorize each chunk into exactly ONE of these categories:
{categories}

Text to analyze:
```
{text}
```

Return ONLY a JSON array where each object has:
- "content": the original text chunk, unchanged
- "category": one of the category keys above

Example: [{{"content": "...", "category": "{example_key}"}}]

Return ONLY the JSON array, no explanation or markdown."""


class CategoryRegistry:
    """Read-only, ordered collection of category definitions."""

    def __init__(self, categories: Iterable[CategoryDefinition] = DEFAULT_CATEGORIES):
        self._categories = tuple(categories)
        if not self._categories:
            raise ValueError("Category registry cannot be empty")

        self._by_key = {category.key: category for category in self._categories}
        if len(self._by_key) != len(self._categories):
            raise ValueError("Category keys must be unique")

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "CategoryRegistry":
        """Build from a [[categories]] table, falling back to the defaults."""
        entries = config.get("categories")
        if not entries:
            return cls()
        return cls(CategoryDefinition(**entry) for entry in entries)

    def __iter__(self):
        return iter(self._categories)

    def __len__(self) -> int:
        return len(self._categories)

    def __contains__(self, key: object) -> bool:
        return key in self._by_key

    def list_categories(self) -> list[CategoryDefinition]:
        return list(self._categories)

    def is_valid_key(self, key: Any) -> bool:
        return isinstance(key, str) and key in self._by_key

    def get_category(self, key: str) -> CategoryDefinition | None:
        return self._by_key.get(key)

    def category_keys(self) -> list[str]:
        return [category.key for category in self._categories]

    def category_labels(self) -> dict[str, str]:
        return {category.key: category.label for category in self._categories}

    def label_for(self, key: str) -> str:
        category = self._by_key.get(key)
        return category.label if category else key

    def rankable_categories(self) -> list[CategoryDefinition]:
        return [category for category in self._categories if category.rankable]

    def is_rankable(self, key: str) -> bool:
        category = self._by_key.get(key)
        return bool(category and category.rankable)

    def build_classification_prompt(self, text: str) -> str:
        """Build the prompt: numbered categories, the text, output format."""
        categories = "\n".join(
            f'{index}. "{category.key}" - {category.description}'
            for index, category in enumerate(self._categories, start=1)
        )
        return CLASSIFICATION_PROMPT.format(
            categories=categories,
            text=text,
            example_key=self._categories[0].key,
        )


# Process-wide default, read-only for the lifetime of the process
default_registry = CategoryRegistry()


def list_categories() -> list[CategoryDefinition]:
    """Convenience wrapper over the default registry."""
    return default_registry.list_categories()


def is_valid_key(key: Any) -> bool:
    """Convenience wrapper over the default registry."""
    return default_registry.is_valid_key(key)
