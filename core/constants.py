"""
Constants and configuration values for recipe parsing.

Lexicons and thresholds here are tuning parameters of the heuristics,
not contracts.
"""

# Weights for the recipe-level confidence score. Fixed so scores stay
# comparable across backends and over time.
CONFIDENCE_WEIGHTS = {
    'ocr': 0.3,
    'classification': 0.4,
    'completeness': 0.3,
}

DEFAULT_CONFIDENCE_THRESHOLD = 0.6

# Per-rule classification certainties
LINE_CERTAINTY = {
    'title': 0.7,
    'title_first_line_bonus': 0.2,
    'section_header': 0.9,
    'pattern': 0.6,
    'pattern_and_position': 0.8,
    'metadata': 0.85,
    'noise': 0.9,
    'fallback': 0.3,
}

# A block is "large type" when its height exceeds the median by this ratio
LARGE_FONT_RATIO = 1.5

# Section headers: at most this many words
MAX_HEADER_WORDS = 4

# Header lexicon mapped to the section it opens
SECTION_HEADER_WORDS = {
    'ingredients': 'ingredients',
    'ingredient': 'ingredients',
    'you will need': 'ingredients',
    'what you need': 'ingredients',
    'directions': 'instructions',
    'direction': 'instructions',
    'instructions': 'instructions',
    'instruction': 'instructions',
    'method': 'instructions',
    'preparation': 'instructions',
    'steps': 'instructions',
    'notes': 'notes',
    'note': 'notes',
    'tips': 'notes',
}

# Units recognised in "quantity unit name" ingredient lines
UNIT_WORDS = (
    'teaspoons', 'teaspoon', 'tsp', 'tablespoons', 'tablespoon', 'tbsp', 'tbs', 'tbl',
    'cups', 'cup', 'c',
    'ounces', 'ounce', 'oz', 'fl oz',
    'pounds', 'pound', 'lbs', 'lb',
    'grams', 'gram', 'g', 'kilograms', 'kilogram', 'kg', 'mg',
    'milliliters', 'millilitres', 'milliliter', 'millilitre', 'ml',
    'liters', 'litres', 'liter', 'litre', 'l', 'dl', 'cl',
    'pints', 'pint', 'pt', 'quarts', 'quart', 'qt', 'gallons', 'gallon', 'gal',
    'pinches', 'pinch', 'dashes', 'dash', 'cloves', 'clove',
    'cans', 'can', 'packages', 'package', 'pkg', 'sticks', 'stick',
    'slices', 'slice', 'pieces', 'piece', 'bunches', 'bunch', 'sprigs', 'sprig',
    'handfuls', 'handful', 'heads', 'head', 'large', 'medium', 'small',
)

UNICODE_FRACTIONS = '½⅓⅔¼¾⅕⅖⅗⅘⅙⅚⅛⅜⅝⅞'

# Leading quantity: integer, decimal, fraction, mixed number, unicode
# fraction or range ("2-3", "2 to 3"). Never a bare ordinal like "1." or "1)".
QUANTITY_PATTERN = (
    r'(?:\d+\s+\d+/\d+|\d+/\d+|\d+(?:\.\d+)?\s*[' + UNICODE_FRACTIONS + r']?|[' + UNICODE_FRACTIONS + r'])'
    r'(?:\s*(?:-|–|to)\s*(?:\d+/\d+|\d+(?:\.\d+)?))?'
)

BULLET_PATTERN = r'^\s*[-•●○◦▪▫*·]+\s*'

# Ordinal step prefixes: "1.", "2)", "Step 3", "First,"
STEP_PREFIX_PATTERNS = [
    r'^\s*\d{1,2}\s*[.)]\s+(?=\S)',
    r'^\s*step\s*\d{1,2}\s*[:.)-]?\s*',
    r'^\s*(?:first|second|third|fourth|fifth|next|then|finally|lastly)\s*,\s*',
]

# Words that make a "number + word" line metadata rather than an ingredient
METADATA_HEAD_WORDS = {
    'servings', 'serving', 'serves', 'portions', 'people', 'minutes', 'minute',
    'mins', 'min', 'hours', 'hour', 'hrs', 'hr', 'degrees',
}

# Metadata keyword → ParsedRecipe field
METADATA_KEYWORDS = {
    'prep time': 'prep_time',
    'preparation time': 'prep_time',
    'prep': 'prep_time',
    'cook time': 'cook_time',
    'cooking time': 'cook_time',
    'bake time': 'cook_time',
    'baking time': 'cook_time',
    'cook': 'cook_time',
    'total time': 'total_time',
    'serves': 'servings',
    'servings': 'servings',
    'serving': 'servings',
    'yield': 'servings',
    'yields': 'servings',
    'makes': 'servings',
}

# Keywords that double as cooking verbs ("Cook 20 minutes")
METADATA_VERB_KEYWORDS = ('prep', 'cook')

HOUR_UNITS = ('hours', 'hour', 'hrs', 'hr', 'h')
MINUTE_UNITS = ('minutes', 'minute', 'mins', 'min', 'm')

# Times beyond a day are treated as OCR garbage and left unset
MAX_TIME_MINUTES = 1440

# Page-artifact patterns
PAGE_NUMBER_PATTERNS = [
    r'^\d{1,4}$',
    r'^-\s*\d+\s*-$',
    r'^page\s*\d+(\s*(of|/)\s*\d+)?$',
    r'^p\.\s*\d+$',
]

# A normalized line repeated this often is a running header/footer
REPEATED_LINE_MIN_COUNT = 2
REPEATED_LINE_MIN_LENGTH = 10

# OCR misreads applied only inside quantity+unit tokens
OCR_DIGIT_MISREADS = {
    'l': '1',
    'I': '1',
    'O': '0',
    'o': '0',
}

PLACEHOLDER_TITLE = "Untitled Recipe"

# Validator bounds
MAX_REASONABLE_TIME_MINUTES = 480
MAX_REASONABLE_SERVINGS = 100
LOW_CONFIDENCE_REVIEW_THRESHOLD = 0.5

# Words whose presence suggests the text really is a recipe
RECIPE_INDICATORS = (
    'ingredients', 'directions', 'instructions', 'recipe', 'cook', 'bake',
    'mix', 'stir', 'cup', 'tablespoon', 'teaspoon', 'tbsp', 'tsp',
    'preheat', 'oven', 'minutes', 'servings', 'serves',
)
MIN_RECIPE_INDICATORS = 3
MIN_RECIPE_TEXT_LENGTH = 20

# LLM prompt template
RECIPE_PARSE_PROMPT = """You are given text extracted by OCR from a photo of a recipe. The text may contain
recognition errors, broken lines and page artifacts.

Extract the recipe and reply with a single JSON object, no commentary, using exactly these keys:
{{
  "title": string,
  "description": string or null,
  "ingredients": [string, ...],        // one entry per ingredient line, in recipe order
  "instructions": [string, ...],       // one entry per step, in execution order, without step numbers
  "prepTime": integer minutes or null,
  "cookTime": integer minutes or null,
  "servings": integer or null,
  "notes": [string, ...],
  "confidence": number between 0 and 1 describing how sure you are of the extraction
}}

OCR text:
\"\"\"
{text}
\"\"\"
"""
