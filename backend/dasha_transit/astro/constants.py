import swisseph as swe

# Nine grahas in traditional weekday order, with their Swiss Ephemeris bodies
PLANET_BODIES = [
    ("SUN", swe.SUN),
    ("MOON", swe.MOON),
    ("MARS", swe.MARS),
    ("MERCURY", swe.MERCURY),
    ("JUPITER", swe.JUPITER),
    ("VENUS", swe.VENUS),
    ("SATURN", swe.SATURN),
    ("RAHU", "NODE"),   # special handling
    ("KETU", "KETU"),   # derived
]

AYANAMSHA = {
    "LAHIRI": swe.SIDM_LAHIRI,
    "RAMAN": swe.SIDM_RAMAN,
    "KRISHNAMURTI": swe.SIDM_KRISHNAMURTI,
}

# Vedanjanam is Lahiri plus 6 arc minutes
VEDANJANAM_OFFSET_DEG = 0.1

AYANAMSHA_KEYS = {"LAHIRI", "RAMAN", "KRISHNAMURTI", "VEDANJANAM", "LAHIRI_LINEAR"}
NODE_TYPES = {"MEAN", "TRUE"}
HOUSE_CODES = {"WHOLE_SIGN": "W", "EQUAL": "E", "PLACIDUS": "P"}

# Closed-form Lahiri model
LAHIRI_BASE_YEAR = 2000
LAHIRI_BASE_VALUE_DEG = 23.853
PRECESSION_ARCSEC_PER_YEAR = 50.2388

ZODIAC_SIGNS = [
    "Aries", "Taurus", "Gemini", "Cancer", "Leo", "Virgo",
    "Libra", "Scorpio", "Sagittarius", "Capricorn", "Aquarius", "Pisces",
]

NAKSHATRA_NAMES = [
    "Ashwini", "Bharani", "Krittika", "Rohini", "Mrigashira", "Ardra",
    "Punarvasu", "Pushya", "Ashlesha", "Magha", "Purva Phalguni", "Uttara Phalguni",
    "Hasta", "Chitra", "Swati", "Vishakha", "Anuradha", "Jyeshtha",
    "Mula", "Purva Ashadha", "Uttara Ashadha", "Shravana", "Dhanishta", "Shatabhisha",
    "Purva Bhadrapada", "Uttara Bhadrapada", "Revati",
]

# Geometric spans in degrees
NAKSHATRA_SPAN_DEG = 360.0 / 27.0
PADA_SPAN_DEG = NAKSHATRA_SPAN_DEG / 4.0  # 3°20'

# ------------------------- Vimshottari -------------------------

DASHA_LORDS = ["KETU", "VENUS", "SUN", "MOON", "MARS", "RAHU", "JUPITER", "SATURN", "MERCURY"]

DASHA_YEARS = {
    "KETU": 7,
    "VENUS": 20,
    "SUN": 6,
    "MOON": 10,
    "MARS": 7,
    "RAHU": 18,
    "JUPITER": 16,
    "SATURN": 19,
    "MERCURY": 17,
}

DAYS_PER_YEAR = 365.25

# ------------------------- Aspects -------------------------

NO_ASPECT = "NO_ASPECT"

# Checked in this order; the first match wins
ASPECT_ANGLES = {
    "CONJUNCTION": 0.0,
    "SEXTILE": 60.0,
    "SQUARE": 90.0,
    "TRINE": 120.0,
    "OPPOSITION": 180.0,
}

DEFAULT_ASPECT_ORBS = {
    "CONJUNCTION": 10.0,
    "SEXTILE": 6.0,
    "SQUARE": 8.0,
    "TRINE": 8.0,
    "OPPOSITION": 10.0,
}

MAX_ASPECT_ITERATIONS = 10000

# ------------------------- Houses & predictions -------------------------

HOUSE_SIGNIFICATIONS = {
    1: ("Self", "personality, health, vitality and life direction"),
    2: ("Wealth", "family, speech, savings and food"),
    3: ("Courage", "siblings, communication, short journeys and effort"),
    4: ("Home", "mother, property, vehicles and inner peace"),
    5: ("Creativity", "children, romance, intellect and speculation"),
    6: ("Health", "daily work, service, debts and competition"),
    7: ("Partnership", "marriage, business partners and contracts"),
    8: ("Transformation", "inheritance, research, secrets and sudden events"),
    9: ("Fortune", "higher learning, teachers, faith and long journeys"),
    10: ("Career", "status, authority, reputation and public life"),
    11: ("Gains", "income, friends, networks and fulfilled wishes"),
    12: ("Release", "expenses, foreign lands, retreat and spirituality"),
}

# Houses counted from the natal lagna in which the transiting Moon is supportive
MOON_FAVORABLE_HOUSES = {1, 3, 6, 7, 10, 11}

MAJOR_TRANSIT_PLANETS = {
    "JUPITER": "About 12 months per sign",
    "SATURN": "About 2.5 years per sign",
    "RAHU": "About 18 months per sign",
    "KETU": "About 18 months per sign",
}

# Houses where each slow planet's transit is traditionally productive
MAJOR_TRANSIT_FAVORABLE_HOUSES = {
    "JUPITER": {2, 5, 7, 9, 11},
    "SATURN": {3, 6, 11},
    "RAHU": {3, 6, 10, 11},
    "KETU": {3, 6, 11},
}

# ------------------------- Period analysis -------------------------

# Functional benefics and malefics per ascendant sign index (0=Aries)
FUNCTIONAL_NATURE = {
    0: ({"SUN", "MARS", "JUPITER"}, {"MERCURY", "VENUS", "SATURN"}),
    1: ({"SATURN", "MERCURY", "SUN"}, {"JUPITER", "MOON", "VENUS"}),
    2: ({"VENUS", "MERCURY"}, {"MARS", "JUPITER", "SUN"}),
    3: ({"MARS", "JUPITER", "MOON"}, {"VENUS", "MERCURY", "SATURN"}),
    4: ({"MARS", "SUN", "JUPITER"}, {"MERCURY", "VENUS", "SATURN"}),
    5: ({"VENUS", "MERCURY"}, {"MARS", "MOON", "JUPITER"}),
    6: ({"SATURN", "MERCURY", "VENUS"}, {"JUPITER", "SUN", "MARS"}),
    7: ({"MOON", "JUPITER", "SUN"}, {"MERCURY", "VENUS"}),
    8: ({"SUN", "MARS", "JUPITER"}, {"VENUS", "SATURN"}),
    9: ({"VENUS", "MERCURY", "SATURN"}, {"MARS", "JUPITER", "MOON"}),
    10: ({"VENUS", "SATURN"}, {"JUPITER", "MOON", "MARS"}),
    11: ({"MOON", "MARS", "JUPITER"}, {"SATURN", "VENUS", "SUN", "MERCURY"}),
}

BASELINE_STRENGTH = 0.5
MAHADASHA_WEIGHT = 0.2
ANTARDASHA_WEIGHT = 0.1

DASHA_EFFECTS = {
    "SUN": {
        "general": "Leadership, authority, government matters",
        "positive": "Career advancement, recognition",
        "negative": "Health issues, conflicts with superiors",
        "remedies": ["Offer water to the rising Sun", "Donate wheat on Sundays", "Wear ruby after consultation"],
    },
    "MOON": {
        "general": "Emotions, mind, mother, home",
        "positive": "Mental peace, family harmony",
        "negative": "Mood swings, fluctuating health",
        "remedies": ["Chant Chandra mantra on Mondays", "Donate milk or rice", "Wear pearl after consultation"],
    },
    "MARS": {
        "general": "Energy, courage, siblings, property",
        "positive": "Physical strength, new ventures",
        "negative": "Accidents, conflicts, surgery",
        "remedies": ["Recite Hanuman Chalisa on Tuesdays", "Donate red lentils", "Wear red coral after consultation"],
    },
    "MERCURY": {
        "general": "Intelligence, communication, business",
        "positive": "Learning, writing, commerce",
        "negative": "Anxiety, speech issues",
        "remedies": ["Chant Budha mantra on Wednesdays", "Donate green gram", "Wear emerald after consultation"],
    },
    "JUPITER": {
        "general": "Wisdom, wealth, children, spirituality",
        "positive": "Prosperity, knowledge, marriage",
        "negative": "Overconfidence, weight gain",
        "remedies": ["Honour teachers on Thursdays", "Donate turmeric or yellow cloth", "Wear yellow sapphire after consultation"],
    },
    "VENUS": {
        "general": "Love, beauty, luxury, spouse",
        "positive": "Relationships, arts, wealth",
        "negative": "Indulgence, relationship strain",
        "remedies": ["Chant Shukra mantra on Fridays", "Donate white sweets or cloth", "Wear diamond after consultation"],
    },
    "SATURN": {
        "general": "Discipline, hard work, longevity",
        "positive": "Stability, spiritual growth",
        "negative": "Delays, obstacles, chronic ailments",
        "remedies": ["Light a sesame oil lamp on Saturdays", "Serve the elderly", "Wear blue sapphire only after consultation"],
    },
    "RAHU": {
        "general": "Ambition, foreign matters, technology",
        "positive": "Sudden gains, foreign travel",
        "negative": "Confusion, addiction, scandals",
        "remedies": ["Chant Rahu mantra", "Donate blankets", "Wear hessonite after consultation"],
    },
    "KETU": {
        "general": "Spirituality, detachment, past life karma",
        "positive": "Liberation, intuition, research",
        "negative": "Isolation, mental confusion",
        "remedies": ["Worship Ganesha", "Feed stray dogs", "Wear cat's eye after consultation"],
    },
}

DEFAULT_DASHA_EFFECTS = {
    "general": "General planetary influences",
    "positive": "Beneficial effects",
    "negative": "Challenging effects",
    "remedies": ["General remedies", "Consult astrologer"],
}
