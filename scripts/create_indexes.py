from pymongo import MongoClient, ASCENDING
from reaction_api.core.config import settings


def main():
    db = MongoClient(settings.mongo_dsn)[settings.mongo_db]

    print("Using DSN:", settings.mongo_dsn, "DB:", settings.mongo_db)
    # video_reactions: одна реакция на пару (video, ip) держится на _id
    db["video_reactions"].create_index(
        [("video_id", ASCENDING), ("reaction_type", ASCENDING)],
        name="video_reactions_video_type"
    )
    db["video_reactions"].create_index(
        [("ip_address", ASCENDING)], name="video_reactions_ip"
    )

    # videos
    db["videos"].create_index(
        [("file_id", ASCENDING)], unique=True, name="videos_file_id"
    )

    print("Indexes ensured.")


if __name__ == "__main__":
    main()
