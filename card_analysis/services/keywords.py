"""Keyword dictionaries for rule-based domain detection and concept extraction.

Keywords are lowercase and matched on word boundaries. Longer keywords weigh
more, so multi-word phrases are listed where a single word would be ambiguous.
"""

from card_analysis.models.card_analysis import ContentDomain

DOMAIN_KEYWORDS: dict[ContentDomain, list[str]] = {
    ContentDomain.LANGUAGES: [
        "vocabulary", "grammar", "verb", "noun", "adjective", "adverb",
        "pronoun", "preposition", "conjugation", "conjugate", "tense",
        "past tense", "subjunctive", "infinitive", "plural", "singular",
        "gender", "masculine", "feminine", "translate", "translation",
        "pronunciation", "phrase", "idiom", "spanish", "french", "german",
        "italian", "japanese", "chinese", "mandarin", "korean", "russian",
        "portuguese", "arabic", "hiragana", "katakana", "kanji", "accent",
        "syllable", "dialect", "native speaker",
    ],
    ContentDomain.MATHEMATICS: [
        "equation", "theorem", "proof", "lemma", "algebra", "calculus",
        "geometry", "trigonometry", "derivative", "integral", "polynomial",
        "matrix", "vector", "eigenvalue", "logarithm", "exponent", "fraction",
        "prime number", "integer", "function", "limit", "probability",
        "statistics", "variance", "hypotenuse", "triangle", "circle",
        "angle", "perimeter", "quadratic", "linear", "coefficient",
        "factorial", "sum", "product", "arithmetic", "sine", "cosine",
        "tangent", "axiom",
    ],
    ContentDomain.SCIENCES: [
        "atom", "molecule", "electron", "proton", "neutron", "element",
        "periodic table", "chemical", "reaction", "compound", "physics",
        "chemistry", "biology", "cell", "organism", "evolution",
        "photosynthesis", "mitochondria", "dna", "gene", "species",
        "ecosystem", "energy", "force", "gravity", "velocity",
        "acceleration", "momentum", "newton", "thermodynamics", "entropy",
        "wavelength", "particle", "quantum", "hypothesis", "experiment",
        "laboratory", "catalyst", "isotope", "oxidation",
    ],
    ContentDomain.HISTORY_SOCIAL: [
        "history", "historical", "century", "war", "revolution", "empire",
        "dynasty", "treaty", "civilization", "ancient", "medieval",
        "renaissance", "colonial", "independence", "monarchy", "king",
        "queen", "emperor", "battle", "capital", "country", "continent",
        "geography", "population", "culture", "society", "sociology",
        "anthropology", "archaeology", "world war", "cold war", "president",
        "civil rights", "migration", "river", "mountain", "ocean",
    ],
    ContentDomain.ARTS_MUSIC: [
        "painting", "painter", "sculpture", "artist", "artwork", "museum",
        "impressionism", "baroque", "composer", "symphony", "melody",
        "harmony", "rhythm", "chord", "scale", "tempo", "orchestra",
        "opera", "sonata", "concerto", "instrument", "piano", "violin",
        "guitar", "novel", "poem", "poetry", "poet", "literature", "author",
        "playwright", "shakespeare", "sonnet", "metaphor", "theatre",
        "theater", "film", "cinema",
    ],
    ContentDomain.TECHNOLOGY: [
        "algorithm", "programming", "software", "hardware", "computer",
        "code", "compiler", "database", "network", "protocol", "server",
        "client", "javascript", "python", "java", "html", "css", "sql",
        "api", "framework", "library", "variable", "loop", "array",
        "object", "class", "method", "recursion", "binary", "operating system",
        "memory", "cpu", "cache", "encryption", "internet", "http",
        "data structure", "linked list", "hash table", "machine learning",
        "cloud",
    ],
    ContentDomain.MEDICINE_HEALTH: [
        "anatomy", "physiology", "disease", "symptom", "diagnosis",
        "treatment", "patient", "clinical", "medicine", "medical", "drug",
        "dose", "pharmacology", "antibiotic", "vaccine", "virus", "bacteria",
        "infection", "heart", "lung", "liver", "kidney", "brain", "nerve",
        "muscle", "bone", "blood", "artery", "vein", "hormone", "insulin",
        "surgery", "nursing", "syndrome", "chronic", "acute", "cardiac",
        "pathology", "immune system",
    ],
    ContentDomain.LAW_GOVERNMENT: [
        "law", "legal", "court", "judge", "jury", "statute", "constitution",
        "amendment", "legislation", "congress", "parliament", "senate",
        "government", "election", "vote", "democracy", "federal", "contract",
        "tort", "plaintiff", "defendant", "criminal", "civil law",
        "precedent", "attorney", "lawyer", "rights", "regulation",
        "jurisdiction", "supreme court", "liability", "policy", "citizenship",
    ],
    ContentDomain.BUSINESS_ECONOMICS: [
        "economics", "economy", "market", "supply", "demand", "price",
        "inflation", "interest rate", "gdp", "finance", "financial",
        "investment", "stock", "bond", "dividend", "revenue", "profit",
        "cost", "accounting", "balance sheet", "asset", "liability",
        "equity", "marketing", "management", "business", "company",
        "corporation", "entrepreneur", "startup", "trade", "tariff",
        "monopoly", "capitalism", "fiscal", "monetary", "budget",
    ],
    ContentDomain.TEST_PREP: [
        "sat", "act", "gre", "gmat", "mcat", "lsat", "toefl", "ielts",
        "usmle", "bar exam", "exam", "test", "quiz", "practice question",
        "multiple choice", "answer choice", "score", "section", "passage",
        "reading comprehension", "standardized test", "prep", "review",
    ],
    ContentDomain.HOBBIES: [
        "sport", "sports", "football", "soccer", "basketball", "baseball",
        "tennis", "golf", "chess", "game", "player", "team", "cooking",
        "recipe", "baking", "ingredient", "garden", "gardening", "plant",
        "knitting", "crochet", "photography", "camera", "fishing", "hiking",
        "camping", "travel", "wine", "coffee", "craft", "woodworking",
        "pokemon", "card game", "board game",
    ],
}

STOP_WORDS: frozenset[str] = frozenset({
    "a", "an", "the", "and", "or", "but", "if", "then", "else", "when",
    "at", "by", "for", "with", "about", "against", "between", "into",
    "through", "during", "before", "after", "above", "below", "to", "from",
    "up", "down", "in", "out", "on", "off", "over", "under", "again",
    "further", "once", "here", "there", "where", "why", "how", "all", "any",
    "both", "each", "few", "more", "most", "other", "some", "such", "no",
    "nor", "not", "only", "own", "same", "so", "than", "too", "very", "can",
    "will", "just", "should", "now", "is", "are", "was", "were", "be",
    "been", "being", "have", "has", "had", "having", "do", "does", "did",
    "doing", "would", "could", "ought", "i", "me", "my", "myself", "we",
    "our", "ours", "ourselves", "you", "your", "yours", "yourself",
    "yourselves", "he", "him", "his", "himself", "she", "her", "hers",
    "herself", "it", "its", "itself", "they", "them", "their", "theirs",
    "themselves", "what", "which", "who", "whom", "whose", "this", "that",
    "these", "those", "am", "of", "as", "until", "while", "because",
    "also", "may", "might", "must", "shall", "one", "two", "called",
    "known", "used", "use", "many", "much", "like", "get", "got", "make",
    "made", "way", "well", "yes", "etc",
})
