from pymongo import MongoClient
from reaction_api.core.config import settings


def dump(col_name: str):
    db = MongoClient(settings.mongo_dsn)[settings.mongo_db]
    print(f"\nIndexes in '{col_name}':")
    for i in db[col_name].list_indexes():
        print(" -", i)


if __name__ == "__main__":
    dump("videos")
    dump("video_reactions")
