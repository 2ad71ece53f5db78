"""Well-known npm package names used as the typosquatting corpus.

Drawn from the most-depended-upon packages on the public registry. Names
within a small edit distance of one of these are likely typosquats.
"""

from __future__ import annotations

POPULAR_PACKAGES: tuple[str, ...] = (
    "lodash", "react", "react-dom", "chalk", "request", "commander", "express",
    "moment", "debug", "async", "axios", "tslib", "prop-types", "fs-extra",
    "uuid", "bluebird", "underscore", "vue", "classnames", "mkdirp", "glob",
    "yargs", "colors", "inquirer", "webpack", "rxjs", "semver", "dotenv",
    "body-parser", "minimist", "typescript", "jquery", "babel-runtime",
    "core-js", "through2", "q", "node-fetch", "cheerio", "rimraf", "eslint",
    "jest", "mocha", "chai", "ws", "socket.io", "mongoose", "redis", "mysql",
    "pg", "cors", "helmet", "jsonwebtoken", "bcrypt", "nodemon", "next",
    "graphql", "zod", "ramda", "immutable", "redux", "react-redux",
    "react-router", "react-router-dom", "styled-components", "angular",
    "svelte", "vite", "rollup", "esbuild", "prettier", "ora", "execa",
    "cross-env", "cross-spawn", "yaml", "js-yaml", "handlebars", "ejs", "pug",
    "marked", "qs", "path-to-regexp", "cookie", "cookie-parser", "morgan",
    "winston", "pino", "chokidar", "ajv", "joi", "validator", "date-fns",
    "dayjs", "luxon", "nanoid", "shelljs", "babel-core", "@babel/core",
    "@types/node", "@angular/core", "electron", "puppeteer", "sharp",
    "sqlite3", "knex", "sequelize", "passport", "multer", "formidable",
    "superagent", "got", "koa", "fastify", "hapi", "lit", "preact",
    "tailwindcss", "postcss", "autoprefixer", "sass", "less", "npm", "yarn",
    "pnpm", "nodemailer", "crypto-js", "bn.js", "web3", "ethers",
)
