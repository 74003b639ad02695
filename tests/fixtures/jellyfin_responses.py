"""
Réponses de l'API Jellyfin / Emby pour les tests.

Les deux serveurs partagent le même format de réponse.
"""

# GET /Users/{userId}/Views
JELLYFIN_VIEWS_RESPONSE = {
    "Items": [
        {"Id": "f137a2dd21bbc1b99aa5c0f6bf02a805", "Name": "Films", "CollectionType": "movies"},
        {"Id": "a656b907eb3a73532e40e44b968d0225", "Name": "Series", "CollectionType": "tvshows"},
        {"Id": "7e64e319657a9516ec78490da03edccb", "Name": "Musique", "CollectionType": "music"},
        {"Id": "0c41907140d802bb58430fed7e2cd79e", "Name": "Divers"},
    ],
    "TotalRecordCount": 4,
}

JELLYFIN_MOVIE_ARRIVAL = {
    "Id": "b5a3f1c2d4e6",
    "Name": "Premier Contact",
    "OriginalTitle": "Arrival",
    "SortName": "premier contact",
    "Type": "Movie",
    "ProductionYear": 2016,
    "Overview": "Des vaisseaux extraterrestres apparaissent.",
    "Genres": ["Science-Fiction", "Drame"],
    "Studios": [{"Name": "Paramount Pictures", "Id": "s1"}],
    "People": [
        {"Name": "Denis Villeneuve", "Type": "Director"},
        {"Name": "Amy Adams", "Type": "Actor", "Role": "Louise Banks"},
        {"Name": "Jeremy Renner", "Type": "Actor", "Role": "Ian Donnelly"},
        {"Name": "Eric Heisserer", "Type": "Writer"},
    ],
    "CommunityRating": 7.9,
    "OfficialRating": "PG-13",
    "RunTimeTicks": 69_600_000_000,
    "DateCreated": "2023-11-14T22:13:20.0000000Z",
    "ProviderIds": {"Tmdb": "329865", "Imdb": "tt2543164"},
    "ImageTags": {"Primary": "abc123"},
    "BackdropImageTags": ["def456"],
}

JELLYFIN_SERIES_DARK = {
    "Id": "c7d8e9f0a1b2",
    "Name": "Dark",
    "Type": "Series",
    "ProductionYear": 2017,
    "ProviderIds": {"Tmdb": "70523"},
    "ImageTags": {},
}

# GET /Users/{userId}/Items?parentId=...&startIndex=0
JELLYFIN_ITEMS_RESPONSE = {
    "Items": [JELLYFIN_MOVIE_ARRIVAL, JELLYFIN_SERIES_DARK],
    "TotalRecordCount": 2,
    "StartIndex": 0,
}

# GET /Users/{userId}/Items?limit=0
JELLYFIN_COUNT_RESPONSE = {"Items": [], "TotalRecordCount": 1234, "StartIndex": 0}
