from enum import Enum


class Category(str, Enum):
    """Closed category taxonomy. Each source is bound to exactly one label."""

    TECHNOLOGY = "Technology"
    PROGRAMMING = "Programming"
    MARKETING = "Marketing"
    PRODUCTIVITY = "Productivity"
    MUSIC = "Music"
    BUSINESS = "Business"
    DESIGN = "Design"
    LIFESTYLE = "Lifestyle"
    SCIENCE = "Science"
    PHOTOGRAPHY = "Photography"
    FINANCE = "Finance"
    HEALTH = "Health"


class Source(str, Enum):
    """One source label per adapter. Part of the (source, source_id) dedup key."""

    HACKER_NEWS = "Hacker News"
    DEV_TO = "Dev.to"
    REDDIT_TECH = "Reddit Tech"
    REDDIT_MOTIVATION = "Reddit Motivation"
    REDDIT_MARKETING = "Reddit Marketing"
    REDDIT_PRODUCTIVITY = "Reddit Productivity"
    REDDIT_MUSIC = "Reddit Music"
    REDDIT_BUSINESS = "Reddit Business"
    REDDIT_DESIGN = "Reddit Design"
    REDDIT_TIPS = "Reddit Tips"
    REDDIT_SCIENCE = "Reddit Science"
    REDDIT_PHOTOGRAPHY = "Reddit Photography"
    REDDIT_FINANCE = "Reddit Finance"
    REDDIT_FITNESS = "Reddit Fitness"
