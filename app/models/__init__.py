from app.models.users import UserAuth
from app.models.breweries import Beer, Brewery, brewery_beer, brewery_favorites
from app.models.reviews import Review

__all__ = ["UserAuth", "Brewery", "Beer", "Review", "brewery_beer", "brewery_favorites"]
