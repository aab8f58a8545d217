from typing import Tuple
from pymongo.database import Database
from pymongo import MongoClient
from pymongo.errors import ConfigurationError
import redis.asyncio as aioredis
from fastapi import Request
from redis.asyncio import Redis


def create_mongo_client(uri: str) -> Tuple[MongoClient, Database]:
    # synchronous PyMongo client (use run_in_threadpool for blocking calls)
    client = MongoClient(uri, maxPoolSize=100, serverSelectionTimeoutMS=5000)
    try:
        db = client.get_default_database()
    except ConfigurationError:
        client.close()
        raise ValueError("MONGO_URI must include a database name, e.g. mongodb://host:27017/lms")
    return client, db

def create_redis_client(url: str) -> Redis:
    # redis.asyncio client (async), strings in / strings out
    return aioredis.from_url(url, encoding="utf-8", decode_responses=True)

def get_db(request: Request) -> Database:
    return request.app.state.db

def get_redis(request: Request) -> Redis:
    return request.app.state.redis
