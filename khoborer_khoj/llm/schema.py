"""
Structured output contract for article extraction.

The model must return an object matching `ArticleExtraction`. Its JSON Schema
is sent with every request and the response is validated against it before
anything is stored.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, model_validator

Category = Literal["politics", "bangladesh", "business", "international"]


class Statement(BaseModel):
    speaker: str = Field(description="Full name of the person making the statement. Transliterate from Bengali.")
    affiliation: str | None = Field(
        description="Their organization, party, or title as mentioned in the article. null if not mentioned."
    )
    statement_summary: str = Field(
        description="Concise English summary of what they said. Max 20 words. Do not quote verbatim."
    )
    statement_type: Literal[
        "promise",
        "denial",
        "accusation",
        "announcement",
        "warning",
        "demand",
        "apology",
        "threat",
        "other",
    ] = Field(description="The nature of the statement.")


class Casualties(BaseModel):
    killed: int | None
    injured: int | None
    missing: int | None
    arrested: int | None
    victim_gender: Literal["male", "female", "mixed", "unknown"] | None = Field(
        description="Only if victims are specifically mentioned in the article."
    )
    victim_age_group: Literal["child", "adult", "elderly", "mixed"] | None = Field(
        description="Only if explicitly mentioned in the article."
    )
    victim_profession: list[str] | None = Field(
        description="Only if explicitly mentioned. e.g. garment worker, student."
    )


class MonetaryFigure(BaseModel):
    amount: float = Field(description="Numeric value. Convert Bengali numerals to ASCII.")
    unit: Literal[
        "taka", "crore", "lakh", "thousand", "million", "billion", "dollar", "euro", "other"
    ]
    currency: str = Field(description="ISO currency code. Default BDT if not specified in article.")
    context: str = Field(
        description="What this money refers to. Max 15 words. e.g. allocated for flood relief in Sylhet."
    )


class GovernmentAction(BaseModel):
    action_type: Literal[
        "policy_announcement",
        "policy_implementation",
        "policy_reversal",
        "project_approval",
        "project_completion",
        "project_delay",
        "law_passed",
        "law_repealed",
        "appointment",
        "removal",
        "ban",
        "subsidy",
        "tax_change",
        "regulatory_action",
        "other",
    ]
    ministry_or_body: str | None = Field(description="The government entity taking the action.")
    action_status: Literal[
        "announced", "approved", "implemented", "cancelled", "delayed", "under_review"
    ]
    beneficiary_group: str | None = Field(
        description="Who this action targets or benefits. e.g. small farmers, RMG workers."
    )
    geographic_scope: Literal["national", "divisional", "district", "local"] | None


class PoliticsTags(BaseModel):
    category: Literal["politics"]
    political_parties: list[str] = Field(
        description="All political party names in English, e.g. BNP, Awami League, NCP, Jamaat."
    )
    politicians: list[str] = Field(
        description="Names of politicians mentioned, even if already in the people field."
    )
    government_bodies: list[str] = Field(
        description="e.g. Parliament, Election Commission, High Court, Cabinet."
    )
    event_type: list[
        Literal[
            "election",
            "protest",
            "rally",
            "policy_announcement",
            "corruption_allegation",
            "arrest",
            "diplomatic_meeting",
            "court_verdict",
            "parliamentary_session",
            "resignation",
            "appointment",
            "violence",
            "statement",
            "strike",
            "other",
        ]
    ]


class BangladeshTags(BaseModel):
    category: Literal["bangladesh"]
    incident_type: list[
        Literal[
            "murder",
            "rape",
            "sexual_assault",
            "robbery",
            "theft",
            "kidnapping",
            "arson",
            "road_accident",
            "fire",
            "flood",
            "cyclone",
            "stampede",
            "building_collapse",
            "strike",
            "protest",
            "mob_violence",
            "drug_related",
            "corruption",
            "child_abuse",
            "trafficking",
            "suicide",
            "industrial_accident",
            "other_crime",
            "other_disaster",
            "other_social",
        ]
    ]
    affected_locations: list[str] = Field(
        description="Specific localities where the incident occurred. As granular as the article allows."
    )
    involved_institutions: list[str] = Field(description="e.g. Police, RAB, Fire Service, DGHS.")


class BusinessTags(BaseModel):
    category: Literal["business"]
    sector: list[
        Literal[
            "banking",
            "telecom",
            "garments_rmg",
            "real_estate",
            "agriculture",
            "energy",
            "import_export",
            "stock_market",
            "microfinance",
            "technology",
            "pharmaceuticals",
            "shipping",
            "aviation",
            "retail",
            "food",
            "tourism",
            "other",
        ]
    ]
    companies: list[str] = Field(description="Names of companies or brands mentioned, in English.")
    economic_indicators: list[
        Literal[
            "inflation",
            "remittance",
            "taka_exchange_rate",
            "gdp",
            "trade_deficit",
            "interest_rate",
            "dse_index",
            "cse_index",
            "foreign_reserve",
            "export_earnings",
            "import_cost",
            "other",
        ]
    ]
    event_type: list[
        Literal[
            "merger_acquisition",
            "bankruptcy_closure",
            "investment_announcement",
            "policy_change",
            "price_change",
            "earnings_report",
            "loan_default",
            "export_deal",
            "regulatory_action",
            "market_movement",
            "job_cut",
            "expansion",
            "fraud",
            "other",
        ]
    ]


class InternationalTags(BaseModel):
    category: Literal["international"]
    countries: list[str] = Field(description="Countries the story is about, in English.")
    international_bodies: list[str] = Field(description="e.g. UN, World Bank, IMF, SAARC.")


Tags = Annotated[
    Union[PoliticsTags, BangladeshTags, BusinessTags, InternationalTags],
    Field(discriminator="category"),
]


class ArticleExtraction(BaseModel):
    title_english: str = Field(
        description=(
            "English title based on the actual content, not necessarily a translation "
            "of the original title. Max 15 words."
        )
    )
    title_original: str | None = Field(description="The Bengali title exactly as provided.")
    publish_date: str | None = Field(
        description="Publication date in YYYY-MM-DD. Convert Bengali numerals. null if unparseable."
    )
    category: Category = Field(
        description="Choose the dominant category if the article spans more than one."
    )
    sentiment: Literal["positive", "negative", "neutral"] = Field(
        description="Factual tone of the content. Not your moral judgment of the event."
    )
    importance_score: int = Field(
        ge=1,
        le=5,
        description=(
            "5=national significance. 4=regional/sectoral. 3=routine newsworthy. "
            "2=minor/incremental. 1=negligible."
        ),
    )
    is_update: bool = Field(description="true if this is a follow-up to an already ongoing story.")
    summary: str = Field(
        description=(
            "3-sentence English summary. S1: what happened. S2: who and where. "
            "S3: outcome or significance. Max 80 words. No editorializing."
        )
    )
    locations: list[str] = Field(description="All geographic locations mentioned. Transliterated to English.")
    people: list[str] = Field(
        max_length=8, description="Full names of named individuals. No unnamed references. Max 8."
    )
    organizations: list[str] = Field(
        max_length=8,
        description="All named organizations, institutions, ministries, companies. Max 8.",
    )
    statements: list[Statement] = Field(
        description="Named attributed statements only. Skip any statement where the speaker is unnamed."
    )
    casualties: Casualties = Field(
        description="Only figures explicitly stated. All null if article has no casualty information."
    )
    monetary_figures: list[MonetaryFigure] = Field(
        description="Every specific financial figure mentioned. Empty array if none."
    )
    government_action: GovernmentAction | None = Field(
        description=(
            "Populate only if the article is primarily about a government decision, "
            "policy, or regulatory action. null otherwise."
        )
    )
    tags: Tags = Field(description="Use the block matching the category you selected above.")

    @model_validator(mode="after")
    def _tags_match_category(self) -> "ArticleExtraction":
        if self.tags.category != self.category:
            raise ValueError(
                f"tags block is for {self.tags.category!r} but category is {self.category!r}"
            )
        return self
